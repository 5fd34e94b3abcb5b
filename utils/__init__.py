"""
Utility module
Logging setup, run statistics and the simulation clock
"""

from .logger import get_logger, setup_logging
from .metrics import SeriesRecorder, StatisticsAggregator, WindowedMean
from .unified_time_manager import UnifiedTimeManager

__all__ = ['get_logger', 'setup_logging',
           'SeriesRecorder', 'StatisticsAggregator', 'WindowedMean',
           'UnifiedTimeManager']
