"""Services for the e-bike tracker: mileage accounting and record storage."""

from .mileage_service import MileageUpdate, apply, compute_update, load_document, save_patch
from .record_store import MemoryRecordStore, RecordStore, RedisRecordStore, get_record_store

__all__ = [
    'MileageUpdate',
    'apply',
    'compute_update',
    'load_document',
    'save_patch',
    'RecordStore',
    'RedisRecordStore',
    'MemoryRecordStore',
    'get_record_store',
]
