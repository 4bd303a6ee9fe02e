"""Value types passed between the parser, the core and the TUI."""

from dataclasses import asdict, dataclass


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _wire(obj) -> dict:
    return {_camel(k): v for k, v in asdict(obj).items()}


@dataclass(frozen=True)
class Project:
    name: str
    path: str
    session_count: int

    def to_dict(self) -> dict:
        return _wire(self)


@dataclass
class SessionSummary:
    session_id: str
    file_path: str
    message_count: int = 0
    user_message_count: int = 0
    assistant_message_count: int = 0
    first_timestamp: str | None = None
    last_timestamp: str | None = None
    total_input_tokens: int | None = None
    total_output_tokens: int | None = None
    has_thinking: bool = False
    has_tool_use: bool = False
    cwd: str | None = None

    def to_dict(self) -> dict:
        return _wire(self)


@dataclass
class Message:
    message_id: str
    session_id: str
    role: str
    content: str
    timestamp: str
    raw_content: str = "[]"
    has_thinking: bool = False
    has_tool_use: bool = False
    has_images: bool = False
    parent_id: str | None = None
    model: str | None = None
    stop_reason: str | None = None
    input_tokens: int | None = None
    output_tokens: int | None = None
    cache_creation_tokens: int | None = None
    cache_read_tokens: int | None = None
    is_sidechain: bool | None = None
    user_type: str | None = None

    def to_dict(self) -> dict:
        return _wire(self)


@dataclass
class ProjectStats:
    """Aggregate numbers over one project's session summaries."""
    session_count: int
    total_messages: int
    mean_messages: float
    median_messages: float
    total_input_tokens: int
    total_output_tokens: int
    first_timestamp: str | None
    last_timestamp: str | None
