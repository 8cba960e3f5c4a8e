"""Application configuration.

AppConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass
from typing import Literal, TypeAlias

from redact.errors import ConfigurationError

BodyPolicy: TypeAlias = Literal["lenient", "strict"]

_BODY_POLICIES = ("lenient", "strict")
_LOG_LEVELS = ("critical", "error", "warning", "info", "debug")


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(port=8080, json_body_policy="strict")
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 3000
    debug: bool = False
    backlog: int = 2048
    keep_alive: bool = True
    max_header_size: int = 65_536

    # Request bodies
    max_body_size: int = 1_000_000  # Hard cutoff: the connection is dropped, not answered
    body_methods: tuple[str, ...] = ("POST", "PUT")
    json_body_policy: BodyPolicy = "lenient"  # "strict" answers malformed JSON with 400

    # WebSocket
    websocket_max_message_size: int = 1_048_576  # 1 MiB

    # Logging (applied by the CLI only; the library never configures handlers)
    log_level: str = "info"

    def __post_init__(self) -> None:
        if self.json_body_policy not in _BODY_POLICIES:
            msg = (
                f"Unknown json_body_policy {self.json_body_policy!r}. "
                f"Expected one of: {', '.join(_BODY_POLICIES)}"
            )
            raise ConfigurationError(msg)
        if self.max_body_size <= 0:
            msg = f"max_body_size must be positive, got {self.max_body_size}"
            raise ConfigurationError(msg)
        if self.max_header_size <= 0:
            msg = f"max_header_size must be positive, got {self.max_header_size}"
            raise ConfigurationError(msg)
        if self.websocket_max_message_size <= 0:
            msg = (
                "websocket_max_message_size must be positive, "
                f"got {self.websocket_max_message_size}"
            )
            raise ConfigurationError(msg)
        if self.log_level.lower() not in _LOG_LEVELS:
            msg = f"Unknown log_level {self.log_level!r}"
            raise ConfigurationError(msg)
        # Method names are compared upper-case
        object.__setattr__(self, "body_methods", tuple(m.upper() for m in self.body_methods))
