import codecs
import logging
import os
from dataclasses import dataclass, replace
from typing import Any, Optional

from paybuilder.parser import DEFAULT_SEPARATOR, ErrorPolicy
from paybuilder.writer import DEFAULT_INITIATING_PARTY

ENV_PREFIX = "PAYMENT_BUILDER_"
LOG_FORMATS = ("text", "json")


def _env(name: str, default: str) -> str:
    value = os.getenv(f"{ENV_PREFIX}{name}")
    if value is None or not value.strip():
        return default
    return value


@dataclass(frozen=True)
class BuilderSettings:
    """
    Process level settings for the batch orchestrator and CLI.

    Attributes:
        input_directory (str): Directory scanned for *.csv payment files.
        output_directory (str): Directory receiving the generated *_pain013.xml files.
        separator (str): Field separator used in header and data lines.
        encoding (str): Text encoding of the input files.
        initiating_party (str): Name written to GrpHdr/InitgPty/Nm.
        error_policy (ErrorPolicy): STRICT aborts a file on the first bad row, SKIP drops the row.
        log_level (str): Root logger level name.
        log_format (str): 'text' or 'json'.
    """

    input_directory: str = "input"
    output_directory: str = "output"
    separator: str = DEFAULT_SEPARATOR
    encoding: str = "utf-8"
    initiating_party: str = DEFAULT_INITIATING_PARTY
    error_policy: ErrorPolicy = ErrorPolicy.STRICT
    log_level: str = "INFO"
    log_format: str = "text"

    def __post_init__(self):
        if not self.separator:
            raise ValueError("separator must not be empty")
        try:
            codecs.lookup(self.encoding)
        except LookupError as e:
            raise ValueError(f"Unknown encoding: {self.encoding!r}") from e
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log level: {self.log_level!r}")
        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"Unsupported log format: {self.log_format!r}. Expected 'text' or 'json'.")

    @classmethod
    def from_env(cls) -> "BuilderSettings":
        """
        Reads PAYMENT_BUILDER_* environment variables, falling back to the defaults
        for unset or blank values.

        Raises:
            ValueError: A variable holds an unrecognized value.
        """
        return cls(
            input_directory=_env("INPUT_DIR", "input"),
            output_directory=_env("OUTPUT_DIR", "output"),
            separator=_env("SEPARATOR", DEFAULT_SEPARATOR),
            encoding=_env("ENCODING", "utf-8"),
            initiating_party=_env("INITIATING_PARTY", DEFAULT_INITIATING_PARTY),
            error_policy=ErrorPolicy(_env("ERROR_POLICY", ErrorPolicy.STRICT.value).strip().lower()),
            log_level=_env("LOG_LEVEL", "INFO").strip().upper(),
            log_format=_env("LOG_FORMAT", "text").strip().lower(),
        )

    def override(self, **kwargs: Optional[Any]) -> "BuilderSettings":
        """
        Returns a copy with every non-None keyword applied.

        Raises:
            ValueError: An applied value is invalid.
        """
        return replace(self, **{k: v for k, v in kwargs.items() if v is not None})
