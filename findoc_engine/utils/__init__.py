"""Financial Document Engine - Utilities Package"""

from findoc_engine.utils.config import Config
from findoc_engine.utils.decorators import (
    audit_log,
    measure_performance,
    performance_context,
)

__all__ = [
    'Config',
    'audit_log',
    'measure_performance',
    'performance_context',
]
