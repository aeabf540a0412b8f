"""Workflow transition table for kegiatan records.

Every status change goes through :func:`assert_transition`; an action whose
source status is not listed in ``TRANSITIONS`` is rejected. Field edits and
corrections made after approval are gated here as well.
"""
from __future__ import annotations

from enum import StrEnum

from talawang.application.exceptions import (
    AlreadyCancelledError,
    ForbiddenError,
    IllegalTransitionError,
    NotFoundError,
)
from talawang.domain.entities.kegiatan import Kegiatan
from talawang.domain.value_objects.enums import TERMINAL_STATUSES, KegiatanStatus, Role


class WorkflowAction(StrEnum):
    SUBMIT = "submit"
    PPK_APPROVE = "ppk_approve"
    PPK_REJECT = "ppk_reject"
    KABALAI_APPROVE = "kabalai_approve"
    KABALAI_REJECT = "kabalai_reject"
    RECORD_ST = "record_st"
    CANCEL = "cancel"


_NON_TERMINAL = frozenset(s for s in KegiatanStatus if s not in TERMINAL_STATUSES)

TRANSITIONS: dict[WorkflowAction, tuple[frozenset[KegiatanStatus], KegiatanStatus]] = {
    WorkflowAction.SUBMIT: (
        frozenset({KegiatanStatus.DRAFT, KegiatanStatus.DIKEMBALIKAN}),
        KegiatanStatus.DIAJUKAN,
    ),
    WorkflowAction.PPK_APPROVE: (frozenset({KegiatanStatus.DIAJUKAN}), KegiatanStatus.DIKETAHUI),
    WorkflowAction.PPK_REJECT: (frozenset({KegiatanStatus.DIAJUKAN}), KegiatanStatus.DIKEMBALIKAN),
    WorkflowAction.KABALAI_APPROVE: (frozenset({KegiatanStatus.DIKETAHUI}), KegiatanStatus.DISETUJUI),
    WorkflowAction.KABALAI_REJECT: (frozenset({KegiatanStatus.DIKETAHUI}), KegiatanStatus.DIKEMBALIKAN),
    WorkflowAction.RECORD_ST: (frozenset({KegiatanStatus.DISETUJUI}), KegiatanStatus.SELESAI),
    WorkflowAction.CANCEL: (_NON_TERMINAL, KegiatanStatus.DIBATALKAN),
}


def sources_of(action: WorkflowAction) -> frozenset[KegiatanStatus]:
    return TRANSITIONS[action][0]


def target_of(action: WorkflowAction) -> KegiatanStatus:
    return TRANSITIONS[action][1]


def assert_cancellable(kegiatan: Kegiatan | None) -> Kegiatan:
    if kegiatan is None:
        raise NotFoundError("Kegiatan tidak ditemukan")
    if kegiatan.status == KegiatanStatus.DIBATALKAN:
        raise AlreadyCancelledError("Kegiatan sudah dalam status dibatalkan")
    if kegiatan.has_surat_tugas:
        raise IllegalTransitionError("Kegiatan yang sudah memiliki No. ST tidak dapat dibatalkan")
    if kegiatan.status in TERMINAL_STATUSES:
        raise IllegalTransitionError(
            f'Kegiatan dengan status "{kegiatan.status}" tidak dapat dibatalkan'
        )
    return kegiatan


def assert_transition(kegiatan: Kegiatan, action: WorkflowAction) -> KegiatanStatus:
    """Return the target status of ``action`` or raise if it is illegal here."""
    if action == WorkflowAction.CANCEL:
        assert_cancellable(kegiatan)
        return target_of(action)

    sources, target = TRANSITIONS[action]
    if kegiatan.status not in sources:
        allowed = ", ".join(f'"{s}"' for s in sorted(sources))
        raise IllegalTransitionError(
            f'Kegiatan dengan status "{kegiatan.status}" tidak dapat diproses. '
            f"Status yang diizinkan: {allowed}."
        )
    return target


# statuses a record holds once its PPK has approved it
PPK_APPROVED_STATUSES = frozenset({
    KegiatanStatus.DIKETAHUI,
    KegiatanStatus.DISETUJUI,
    KegiatanStatus.SELESAI,
})

# per role, the statuses in which field edits are accepted; None means any
_REPLACEABLE: dict[Role, frozenset[KegiatanStatus] | None] = {
    Role.REGULAR: frozenset({KegiatanStatus.DRAFT, KegiatanStatus.DIKEMBALIKAN}),
    Role.PPK: frozenset({KegiatanStatus.DIAJUKAN}),
    Role.KABALAI: None,
    Role.ADMIN: None,
}
_PATCHABLE: dict[Role, frozenset[KegiatanStatus] | None] = {
    **_REPLACEABLE,
    Role.REGULAR: frozenset({KegiatanStatus.DRAFT}),
}

ST_CORRECTABLE = frozenset({KegiatanStatus.DISETUJUI, KegiatanStatus.SELESAI})
APPROVAL_CORRECTABLE = frozenset({KegiatanStatus.DISETUJUI})


def editable_statuses(role: Role, *, partial: bool = False) -> frozenset[str] | None:
    allowed = (_PATCHABLE if partial else _REPLACEABLE)[role]
    return None if allowed is None else frozenset(s.value for s in allowed)


def assert_editable(kegiatan: Kegiatan, role: Role, *, partial: bool = False) -> frozenset[str] | None:
    """Check that ``role`` may change the record's fields in its current status.

    Returns the statuses the conditional update must still find the row in,
    or None when the role is not restricted.
    """
    allowed = editable_statuses(role, partial=partial)
    if allowed is None or kegiatan.status in allowed:
        return allowed
    if role == Role.PPK:
        raise IllegalTransitionError(
            f'PPK hanya dapat mengubah pengajuan dengan status "diajukan". '
            f"Status saat ini: {kegiatan.status}"
        )
    labels = " & ".join(sorted(allowed))
    raise IllegalTransitionError(
        f"Kegiatan dengan status {kegiatan.status} tidak dapat diubah. "
        f"Hanya kegiatan dengan status {labels} yang dapat diubah."
    )


def assert_st_correctable(kegiatan: Kegiatan) -> None:
    if kegiatan.status not in ST_CORRECTABLE:
        raise IllegalTransitionError(
            f'Kegiatan dengan status "{kegiatan.status}" tidak dapat diupdate surat tugas. '
            'Hanya kegiatan dengan status "disetujui" atau "selesai" yang dapat diupdate.'
        )


def assert_approval_correctable(kegiatan: Kegiatan | None, user_id: str) -> Kegiatan:
    """Only the Kabalai who approved a record may amend that approval."""
    if kegiatan is None or kegiatan.status not in APPROVAL_CORRECTABLE:
        raise NotFoundError("Kegiatan tidak ditemukan atau belum diketahui")
    if kegiatan.diketahui_oleh_id and kegiatan.diketahui_oleh_id != user_id:
        raise ForbiddenError("Hanya kabalai yang mengetahui kegiatan ini yang dapat mengupdate data")
    return kegiatan
