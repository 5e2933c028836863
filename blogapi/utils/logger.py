import json
import sys
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class LogLevel(Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    SUCCESS = "SUCCESS"


class Colors:
    """ANSI color codes for console output"""
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'

    BRIGHT_BLACK = '\033[90m'
    BRIGHT_RED = '\033[91m'
    BRIGHT_GREEN = '\033[92m'
    BRIGHT_YELLOW = '\033[93m'
    BRIGHT_BLUE = '\033[94m'
    BRIGHT_CYAN = '\033[96m'
    WHITE = '\033[37m'


class BlogLogger:
    """Colorized event logger for business events (likes, follows, feed writes)."""

    level_colors = {
        LogLevel.DEBUG: Colors.BRIGHT_CYAN,
        LogLevel.INFO: Colors.BRIGHT_BLUE,
        LogLevel.WARNING: Colors.BRIGHT_YELLOW,
        LogLevel.ERROR: Colors.BRIGHT_RED,
        LogLevel.SUCCESS: Colors.BRIGHT_GREEN,
    }

    def __init__(self, service_name: str = "BLOG", enable_colors: bool = True, stream=None):
        self.service_name = service_name.upper()
        self.enable_colors = enable_colors
        self.stream = stream

    def _colorize(self, text: str, color: str) -> str:
        if not self.enable_colors:
            return text
        return f"{color}{text}{Colors.RESET}"

    @staticmethod
    def _format_value(value: Any) -> str:
        if isinstance(value, (dict, list)):
            value_str = json.dumps(value, separators=(',', ':'), default=str)
            return value_str[:100] + ("..." if len(value_str) > 100 else "")
        return str(value)

    def format_message(self, level: LogLevel, message: str, context: Optional[str] = None, **kwargs) -> str:
        """Format: [TIMESTAMP] [SERVICE/CONTEXT] [LEVEL] Message | key=value, ..."""
        timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
        service_context = self.service_name
        if context:
            service_context += f"/{context.upper()}"

        line = " ".join([
            self._colorize(f"[{timestamp}]", Colors.DIM),
            self._colorize(f"[{service_context}]", Colors.BRIGHT_BLACK),
            self._colorize(f"[{level.value}]", self.level_colors.get(level, Colors.WHITE) + Colors.BOLD),
            message,
        ])

        if kwargs:
            extras = ", ".join(f"{key}={self._format_value(value)}" for key, value in kwargs.items())
            line += self._colorize(f" | {extras}", Colors.DIM)
        return line

    def _log(self, level: LogLevel, message: str, context: Optional[str] = None, **kwargs):
        stream = self.stream or sys.stdout
        print(self.format_message(level, message, context, **kwargs), file=stream)
        stream.flush()

    def debug(self, message: str, context: Optional[str] = None, **kwargs):
        self._log(LogLevel.DEBUG, message, context, **kwargs)

    def info(self, message: str, context: Optional[str] = None, **kwargs):
        self._log(LogLevel.INFO, message, context, **kwargs)

    def warning(self, message: str, context: Optional[str] = None, **kwargs):
        self._log(LogLevel.WARNING, message, context, **kwargs)

    def error(self, message: str, context: Optional[str] = None, **kwargs):
        self._log(LogLevel.ERROR, message, context, **kwargs)

    def success(self, message: str, context: Optional[str] = None, **kwargs):
        self._log(LogLevel.SUCCESS, message, context, **kwargs)


# Global logger instances for different services
engagement_logger = BlogLogger("ENGAGEMENT")
feed_logger = BlogLogger("FEED")
auth_logger = BlogLogger("AUTH")


def get_logger(service_name: str) -> BlogLogger:
    """Get a logger instance for a specific service"""
    return BlogLogger(service_name)
