"""Financial Document Engine - Processing Package"""

from findoc_engine.processing.batch import BatchProcessor
from findoc_engine.processing.concurrent import ConcurrentProcessor

__all__ = [
    'BatchProcessor',
    'ConcurrentProcessor',
]
