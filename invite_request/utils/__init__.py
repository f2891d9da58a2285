"""
Utilities package initialization.
"""
from .logger import get_logger, log_business_event, log_performance, setup_logging
from .text import title_case

__all__ = ["get_logger", "log_business_event", "log_performance", "setup_logging", "title_case"]
