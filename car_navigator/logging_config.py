"""
Centralized Logging Configuration using Logfire

The backend, the CLI and the generative backend client share this setup.
Standard library loggers are routed through Logfire's handler; LLM calls get
their own spans.
"""

import os
import time
from contextlib import contextmanager
from logging import DEBUG, INFO, basicConfig, getLogger

import logfire


DEBUG_MODE = os.getenv("DEBUG_MODE", "false").lower() == "true"
SERVICE_NAME = os.getenv("LOGFIRE_SERVICE_NAME", "car-navigator")
SEND_TO_LOGFIRE = os.getenv("SEND_TO_LOGFIRE", "if-token-present")
LOG_LEVEL = DEBUG if DEBUG_MODE else INFO

EMOJI = {
    "start": "🚀",
    "success": "✅",
    "error": "❌",
    "warning": "⚠️",
    "info": "ℹ️",
    "debug": "🔍",
    "llm": "🤖",
}

_configured = False


def configure_logging(service_name: str = None, level: str = None):
    """
    Configure Logfire and stdlib logging once per process.

    Args:
        service_name: Optional service name override (e.g. "car-navigator-backend")
        level: Optional stdlib level name; defaults to DEBUG_MODE
    """
    global _configured

    if _configured:
        return logfire

    final_service_name = service_name or SERVICE_NAME

    logfire.configure(
        service_name=final_service_name,
        send_to_logfire=SEND_TO_LOGFIRE,
        console=logfire.ConsoleOptions(
            colors='auto',
            span_style='show-parents' if DEBUG_MODE else 'simple',
            include_timestamps=True,
            verbose=DEBUG_MODE,
            min_log_level='debug' if DEBUG_MODE else 'info',
        ),
    )

    basicConfig(
        level=level or LOG_LEVEL,
        handlers=[logfire.LogfireLoggingHandler()],
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    _configured = True
    logfire.info(f"{EMOJI['start']} Logging configured for {final_service_name}")
    return logfire


class NavigatorLogger:
    """Thin structured logger: stdlib records plus Logfire spans for LLM calls."""

    def __init__(self, name: str):
        self.name = name
        self._logger = getLogger(name)

    def info(self, message: str, **kwargs):
        self._logger.info(f"[{self.name}] {message}", extra=kwargs or None)

    def debug(self, message: str, **kwargs):
        self._logger.debug(f"[{self.name}] {message}", extra=kwargs or None)

    def warning(self, message: str, **kwargs):
        self._logger.warning(f"{EMOJI['warning']} [{self.name}] {message}", extra=kwargs or None)

    def error(self, message: str, error: Exception = None, **kwargs):
        if error:
            kwargs['error_type'] = type(error).__name__
            kwargs['error_message'] = str(error)
        self._logger.error(f"{EMOJI['error']} [{self.name}] {message}", extra=kwargs or None)

    @contextmanager
    def llm_span(self, model: str, prompt_preview: str = None, **attributes):
        """Span around one generative backend call."""
        start_time = time.time()
        preview = prompt_preview[:100] + "..." if prompt_preview and len(prompt_preview) > 100 else prompt_preview
        self.info(f"{EMOJI['llm']} LLM call to '{model}'", prompt_preview=preview)

        try:
            with logfire.span(f"llm.{model}", **attributes) as span:
                yield span
            self.info(
                f"{EMOJI['success']} LLM response received",
                model=model,
                duration_ms=round((time.time() - start_time) * 1000, 2),
            )
        except Exception as e:
            self.error(
                "LLM call failed",
                error=e,
                model=model,
                duration_ms=round((time.time() - start_time) * 1000, 2),
            )
            raise


def get_logger(name: str) -> NavigatorLogger:
    """Get a NavigatorLogger instance for the given name."""
    return NavigatorLogger(name)
