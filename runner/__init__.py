"""Flask service that replays recorded browser steps with Playwright."""

from .config import RunnerConfig, load_config
from .reporter import RunReporter, RunResult, ScreenshotRecord
from .session import BrowserSession, SessionLaunchError, SessionState, execute_manifest

__all__ = [
    "BrowserSession",
    "RunReporter",
    "RunResult",
    "RunnerConfig",
    "ScreenshotRecord",
    "SessionLaunchError",
    "SessionState",
    "execute_manifest",
    "load_config",
]
