"""Importing this package registers every table on Base.metadata."""
from talawang.infrastructure.db.models.kegiatan import KegiatanModel
from talawang.infrastructure.db.models.pegawai import BiayaItemModel, PegawaiModel
from talawang.infrastructure.db.models.status_history import StatusHistoryModel

__all__ = [
    "BiayaItemModel",
    "KegiatanModel",
    "PegawaiModel",
    "StatusHistoryModel",
]
