from __future__ import annotations

from talawang.domain.entities.status_history import StatusHistory
from talawang.infrastructure.db.models.status_history import StatusHistoryModel


def model_to_entity(model: StatusHistoryModel) -> StatusHistory:
    return StatusHistory(
        id=model.id,
        kegiatan_id=model.kegiatan_id,
        status=model.status,
        user_id=model.user_id,
        user_nama=model.user_nama,
        user_role=model.user_role,
        catatan=model.catatan,
        created_at=model.created_at,
    )


def entity_to_model(entity: StatusHistory) -> StatusHistoryModel:
    return StatusHistoryModel(
        kegiatan_id=entity.kegiatan_id,
        status=entity.status,
        user_id=entity.user_id,
        user_nama=entity.user_nama,
        user_role=entity.user_role,
        catatan=entity.catatan,
        created_at=entity.created_at,
    )
