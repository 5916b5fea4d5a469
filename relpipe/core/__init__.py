"""Core types shared by every layer."""

from .config import Config, ConfigError, ReleaseSettings, load_config
from .errors import ErrorCode, PipelineError, exit_code_for
from .result import Err, Ok, Result, is_err, is_ok
from .runctx import RunContext

__all__ = [
    # config
    "Config",
    "ConfigError",
    "ReleaseSettings",
    "load_config",
    # errors
    "ErrorCode",
    "PipelineError",
    "exit_code_for",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
    # runctx
    "RunContext",
]
