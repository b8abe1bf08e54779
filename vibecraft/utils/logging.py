"""
Logging utilities for VibeCraft
Provides structured logging, batch statistics and console setup
"""

import json
import logging
import sys
from datetime import datetime
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class StructuredLogger:
    """Provides structured logging with metadata"""

    def __init__(self, name: str, metadata: Optional[Dict[str, Any]] = None):
        """
        Initialize structured logger

        Args:
            name: Logger name
            metadata: Default metadata to include in all logs
        """
        self.logger = logging.getLogger(name)
        self.metadata = metadata or {}

    def bind(self, **metadata) -> 'StructuredLogger':
        """Return a logger that adds extra metadata to every message"""
        return StructuredLogger(self.logger.name, {**self.metadata, **metadata})

    def _format_message(self, message: str, **kwargs) -> str:
        """Format message with metadata"""
        data = {**self.metadata, **kwargs}
        if data:
            return f"{message} | {json.dumps(data, default=str)}"
        return message

    def debug(self, message: str, **kwargs):
        self.logger.debug(self._format_message(message, **kwargs))

    def info(self, message: str, **kwargs):
        self.logger.info(self._format_message(message, **kwargs))

    def warning(self, message: str, **kwargs):
        self.logger.warning(self._format_message(message, **kwargs))

    def error(self, message: str, **kwargs):
        self.logger.error(self._format_message(message, **kwargs))


class ProcessingStats:
    """Tracks batch processing statistics"""

    def __init__(self):
        self.start_time = datetime.now()
        self.total_images = 0
        self.processed_images = 0
        self.succeeded_images = 0
        self.failed_images = 0
        self.failure_reasons: Dict[str, int] = {}
        self.errors = []
        self.processing_times = []

    def set_total(self, total: int):
        self.total_images = total

    def add_result(self, succeeded: bool, failure_reason: Optional[str] = None,
                   processing_time: Optional[float] = None):
        """
        Add a processing result

        Args:
            succeeded: Whether the image reached the processed state
            failure_reason: Error kind or short reason if it failed
            processing_time: Time taken to process the image
        """
        self.processed_images += 1

        if succeeded:
            self.succeeded_images += 1
        else:
            self.failed_images += 1
            if failure_reason:
                self.failure_reasons[failure_reason] = \
                    self.failure_reasons.get(failure_reason, 0) + 1

        if processing_time:
            self.processing_times.append(processing_time)

    def add_error(self, image_id: str, error: str):
        self.errors.append({
            'image': image_id,
            'error': error,
            'time': datetime.now()
        })

    def get_elapsed_time(self) -> float:
        return (datetime.now() - self.start_time).total_seconds()

    def get_average_processing_time(self) -> float:
        if not self.processing_times:
            return 0.0
        return sum(self.processing_times) / len(self.processing_times)

    def get_summary(self) -> Dict[str, Any]:
        """Get processing summary"""
        elapsed = self.get_elapsed_time()

        return {
            'total_images': self.total_images,
            'processed_images': self.processed_images,
            'succeeded_images': self.succeeded_images,
            'failed_images': self.failed_images,
            'success_rate': (self.succeeded_images / self.processed_images * 100)
                            if self.processed_images > 0 else 0,
            'failure_reasons': self.failure_reasons,
            'errors': len(self.errors),
            'elapsed_time': elapsed,
            'average_time_per_image': self.get_average_processing_time(),
        }

    def format_summary(self) -> str:
        """Processing summary as printable text"""
        summary = self.get_summary()
        lines = [
            "=" * 60,
            "PROCESSING SUMMARY",
            "=" * 60,
            f"Total images:     {summary['total_images']}",
            f"Processed:        {summary['processed_images']}",
            f"Succeeded:        {summary['succeeded_images']} ({summary['success_rate']:.1f}%)",
            f"Failed:           {summary['failed_images']}",
        ]
        if summary['failure_reasons']:
            lines.append("")
            lines.append("Failure reasons:")
            for reason, count in sorted(summary['failure_reasons'].items()):
                lines.append(f"  - {reason}: {count}")
        lines.append(f"Elapsed time:     {summary['elapsed_time']:.1f}s")
        lines.append(f"Avg time/image:   {summary['average_time_per_image']:.2f}s")

        if self.errors:
            lines.append("")
            lines.append("ERRORS:")
            for error in self.errors[:10]:  # Show first 10 errors
                lines.append(f"  - {error['image']}: {error['error']}")
            if len(self.errors) > 10:
                lines.append(f"  ... and {len(self.errors) - 10} more errors")
        return "\n".join(lines)


def setup_console_logging(level: str = "INFO", color: bool = True,
                          fmt: str = DEFAULT_FORMAT):
    """
    Setup console logging with optional color support

    Args:
        level: Logging level
        color: Whether to use colored output
        fmt: Log record format
    """
    console_handler = logging.StreamHandler(sys.stderr)

    formatter = logging.Formatter(fmt)
    if color and sys.stderr.isatty():
        # colorlog ships with the 'color' extra
        try:
            import colorlog
            formatter = colorlog.ColoredFormatter(
                '%(log_color)s' + fmt.replace('%(message)s', '%(reset)s%(message)s'),
                log_colors={
                    'DEBUG': 'cyan',
                    'INFO': 'green',
                    'WARNING': 'yellow',
                    'ERROR': 'red',
                    'CRITICAL': 'red,bg_white',
                }
            )
        except ImportError:
            logger.debug("colorlog not installed, using plain log format")

    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(root_logger.handlers):
        if getattr(handler, '_vibecraft_console', False):
            root_logger.removeHandler(handler)
    console_handler._vibecraft_console = True
    root_logger.addHandler(console_handler)


def setup_logging(config: Dict[str, Any]):
    """
    Configure logging from the 'logging' section of the config

    Args:
        config: Full configuration dictionary
    """
    log_config = config.get('logging', {})
    fmt = log_config.get('format', DEFAULT_FORMAT)
    level = log_config.get('level', 'INFO')
    setup_console_logging(level, log_config.get('color', True), fmt)

    log_file = log_config.get('file')
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(fmt))
        logging.getLogger().addHandler(file_handler)
        logger.debug(f"Logging to {log_file}")
