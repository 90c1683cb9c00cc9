import logging
import sys


class Log:
    """Centralized logging with structured format."""

    _logger: logging.Logger = logging.getLogger("certguard")

    @classmethod
    def configure(cls, log_level: str) -> None:
        """Configure the logger with the specified level and stdout handler."""
        cls._logger.setLevel(log_level.upper())
        if not cls._logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(
                logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
            )
            cls._logger.addHandler(handler)

    @classmethod
    def bind(cls, component: str) -> "ComponentLog":
        """Return a log handle that tags every record with a component name."""
        return ComponentLog(component, cls._logger)

    @classmethod
    def info(cls, message: str, **kwargs: object) -> None:
        """Log an info message."""
        cls._logger.info(message, extra=kwargs)

    @classmethod
    def error(cls, message: str, **kwargs: object) -> None:
        """Log an error message."""
        cls._logger.error(message, extra=kwargs)

    @classmethod
    def warning(cls, message: str, **kwargs: object) -> None:
        """Log a warning message."""
        cls._logger.warning(message, extra=kwargs)

    @classmethod
    def debug(cls, message: str, **kwargs: object) -> None:
        """Log a debug message."""
        cls._logger.debug(message, extra=kwargs)


class ComponentLog:
    """Leveled log handle passed into analyzers.

    Messages are prefixed with the component name and the name is also
    attached to the record as ``component`` for structured handlers.
    """

    def __init__(self, component: str, logger: logging.Logger) -> None:
        self.component = component
        self._logger = logger

    def _log(self, level: int, message: str, kwargs: dict[str, object]) -> None:
        self._logger.log(
            level, f"[{self.component}] {message}", extra={"component": self.component, **kwargs}
        )

    def info(self, message: str, **kwargs: object) -> None:
        self._log(logging.INFO, message, kwargs)

    def error(self, message: str, **kwargs: object) -> None:
        self._log(logging.ERROR, message, kwargs)

    def warning(self, message: str, **kwargs: object) -> None:
        self._log(logging.WARNING, message, kwargs)

    def debug(self, message: str, **kwargs: object) -> None:
        self._log(logging.DEBUG, message, kwargs)
