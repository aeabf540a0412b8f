from __future__ import annotations

from decimal import Decimal

from talawang.domain.entities.pegawai import BiayaItem, Pegawai
from talawang.domain.value_objects.enums import CostCategory
from talawang.infrastructure.db.models.pegawai import BiayaItemModel, PegawaiModel


def item_to_entity(model: BiayaItemModel) -> BiayaItem:
    return BiayaItem(
        id=model.id,
        kategori=CostCategory(model.kategori),
        uraian=model.uraian,
        qty=model.qty,
        harga=Decimal(model.harga),
    )


def model_to_entity(model: PegawaiModel) -> Pegawai:
    return Pegawai(
        id=model.id,
        kegiatan_id=model.kegiatan_id,
        nama=model.nama,
        nip=model.nip,
        jabatan=model.jabatan,
        items=[item_to_entity(item) for item in model.items],
    )


def entity_to_model(entity: Pegawai) -> PegawaiModel:
    return PegawaiModel(
        kegiatan_id=entity.kegiatan_id,
        nama=entity.nama,
        nip=entity.nip,
        jabatan=entity.jabatan,
        total_biaya=entity.total_biaya,
        items=[
            BiayaItemModel(
                kategori=item.kategori.value,
                uraian=item.uraian,
                qty=item.qty,
                harga=item.harga,
            )
            for item in entity.items
        ],
    )
