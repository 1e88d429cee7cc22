"""Canonical Pydantic models shared across all manifestapi modules.

This is the single source of truth for data shapes in the project. The models
fall into three groups:

**Manifest models** -- produced by :class:`~manifestapi.manifests.store.ManifestStore`
from declarative documents and consumed by the client factory:
    :class:`HTTPMethod`, :class:`ParameterLocation`, :class:`ParameterSpec`,
    :class:`ResponseSpec`, :class:`PaginationSpec`, :class:`OperationSpec`,
    :class:`ErrorKind`, :class:`ErrorSpec`, :class:`ServiceMetadata`,
    :class:`BaseManifest`, :class:`ResourceDocument` and :class:`Manifest`.

**Runtime models** -- client configuration, resolution results and
iteration bookkeeping:
    :class:`RequestConfig`, :class:`ClientConfiguration`,
    :class:`IterationOptions`, :class:`IteratorState`,
    :class:`DirectOperation`, :class:`IteratorOperation`.

**Settings models** -- serialised as JSON in the user's config directory:
    :class:`OutputConfig` and :class:`Settings`.

Manifest models are frozen. Documents are validated once at load time so
that malformed shapes fail fast instead of leaking downstream.
"""

from __future__ import annotations

import enum
import re
from typing import Annotated, Any, Callable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_VERSION = "2014-07-26"
DEFAULT_BASE_URL = "https://api.stripe.com"

_PLACEHOLDER = re.compile(r"\{([^{}]+)\}")


# --- Manifest models ---


class HTTPMethod(str, enum.Enum):
    """HTTP verbs an operation may declare."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class ParameterLocation(str, enum.Enum):
    """Where a parameter is placed on the outgoing request."""

    PATH = "path"
    QUERY = "query"
    BODY = "body"


class ParameterSpec(BaseModel):
    """A single named parameter of an :class:`OperationSpec`.

    ``sent_as`` lets a manifest expose a friendlier name than the one the
    API expects on the wire.

    ``type`` is checked before a request is sent. ``string``, the default,
    accepts any value so untyped parameters such as Stripe's ``card`` (a
    token or a hash) pass through.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: Literal["string", "integer", "number", "boolean", "array", "object"] = "string"
    location: ParameterLocation = ParameterLocation.QUERY
    required: bool = False
    default: Any = None
    enum_values: Optional[list[Any]] = Field(default=None, alias="enum")
    description: Optional[str] = None
    sent_as: Optional[str] = None


class ResponseSpec(BaseModel):
    """Shape of an operation's response body.

    For list operations without a ``pagination`` block, ``items_key`` names
    the field holding the page items.
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["object", "list"] = "object"
    items_key: str = "data"


class PaginationSpec(BaseModel):
    """Cursor policy for a list operation.

    The defaults describe Stripe's list envelope: items under ``data``, a
    ``has_more`` flag, and the next page requested with
    ``starting_after=<id of the last item>``.
    """

    model_config = ConfigDict(frozen=True)

    items_key: str = "data"
    has_more_key: str = "has_more"
    cursor_param: str = "starting_after"
    cursor_field: str = "id"
    page_size_param: str = "limit"


class OperationSpec(BaseModel):
    """One named HTTP action: verb, path template, parameters and response shape.

    ``parameters`` may be written in a document either as a mapping
    (``name -> spec``) or as a list of specs carrying a ``name`` key. The
    list form is rejected when a name appears twice.

    Every ``{placeholder}`` in :attr:`uri` must be declared as a ``path``
    parameter.
    """

    model_config = ConfigDict(frozen=True)

    http_method: HTTPMethod
    uri: str
    summary: Optional[str] = None
    parameters: dict[str, ParameterSpec] = Field(default_factory=dict)
    response: ResponseSpec = Field(default_factory=ResponseSpec)
    pagination: Optional[PaginationSpec] = None

    @field_validator("http_method", mode="before")
    @classmethod
    def _upper_method(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value

    @field_validator("parameters", mode="before")
    @classmethod
    def _parameters_by_name(cls, value: Any) -> Any:
        if value is None:
            return {}
        if not isinstance(value, list):
            return value
        by_name: dict[str, Any] = {}
        for entry in value:
            if not isinstance(entry, dict) or "name" not in entry:
                raise ValueError("list-form parameters need a 'name' key")
            entry = dict(entry)
            name = entry.pop("name")
            if name in by_name:
                raise ValueError(f"duplicate parameter '{name}'")
            by_name[name] = entry
        return by_name

    @model_validator(mode="after")
    def _path_parameters_declared(self) -> OperationSpec:
        for placeholder in _PLACEHOLDER.findall(self.uri):
            param = self.parameters.get(placeholder)
            if param is None or param.location != ParameterLocation.PATH:
                raise ValueError(
                    f"uri placeholder '{{{placeholder}}}' is not a declared path parameter"
                )
        return self

    @property
    def path_placeholders(self) -> list[str]:
        return _PLACEHOLDER.findall(self.uri)


class ErrorKind(str, enum.Enum):
    """Semantic error categories an HTTP status can be mapped to."""

    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    VALIDATION = "validation"
    CARD = "card"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    SERVER = "server"
    API = "api"


class ErrorSpec(BaseModel):
    """Mapping target for a transport status code.

    ``message`` is a :meth:`str.format` template. Available fields are
    ``status``, ``message``, ``type``, ``code`` and ``param``.
    """

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str = "{message}"


def _stringify_keys(value: Any) -> Any:
    # YAML reads `401:` as an int key.
    if isinstance(value, dict):
        return {str(key): spec for key, spec in value.items()}
    return value if value is not None else {}


class ServiceMetadata(BaseModel):
    """Service-wide metadata from the base manifest."""

    model_config = ConfigDict(frozen=True)

    name: str = "Stripe"
    base_url: str = DEFAULT_BASE_URL
    api_version: Optional[str] = None
    description: Optional[str] = None


class BaseManifest(BaseModel):
    """The shared ``Manifest`` document of a version: metadata plus common errors."""

    model_config = ConfigDict(frozen=True)

    service: ServiceMetadata = Field(default_factory=ServiceMetadata)
    errors: dict[str, ErrorSpec] = Field(default_factory=dict)

    @field_validator("errors", mode="before")
    @classmethod
    def _error_codes_as_strings(cls, value: Any) -> Any:
        return _stringify_keys(value)

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> BaseManifest:
        metadata = {key: value for key, value in document.items() if key != "errors"}
        return cls.model_validate(
            {"service": metadata, "errors": document.get("errors")}
        )


class ResourceDocument(BaseModel):
    """A resource-specific document before it is merged with its base manifest."""

    model_config = ConfigDict(frozen=True)

    description: Optional[str] = None
    operations: dict[str, OperationSpec]
    errors: dict[str, ErrorSpec] = Field(default_factory=dict)

    @field_validator("errors", mode="before")
    @classmethod
    def _error_codes_as_strings(cls, value: Any) -> Any:
        return _stringify_keys(value)


class Manifest(BaseModel):
    """A resource manifest merged with its version's base manifest.

    ``errors`` holds the base error table overlaid with the resource's own
    entries; it is assembled once when the manifest enters the cache.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    description: Optional[str] = None
    service: ServiceMetadata
    operations: dict[str, OperationSpec]
    errors: dict[str, ErrorSpec] = Field(default_factory=dict)


# --- Runtime models ---


class RequestConfig(BaseModel):
    """Default HTTP settings applied to every executor a client builds."""

    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    retries: int = Field(default=0, ge=0, description="Connection retries done by httpx")


class ClientConfiguration(BaseModel):
    """Credentials and headers owned by the client facade.

    Executors receive the instance by reference and only read it.
    """

    api_key: str
    version: str = DEFAULT_VERSION
    user_agent: str
    headers: dict[str, str] = Field(default_factory=dict)
    request: RequestConfig = Field(default_factory=RequestConfig)


class IterationOptions(BaseModel):
    """Options accepted by :class:`~manifestapi.iterator.ResourceIterator`.

    ``cursor`` overrides the manifest's pagination policy with a callable
    that derives the next cursor from the last item of a page.
    """

    model_config = ConfigDict(extra="forbid")

    limit: Optional[int] = Field(default=None, ge=0, description="Max items to yield")
    page_size: Optional[int] = Field(default=None, ge=1)
    starting_after: Optional[str] = None
    cursor: Optional[Callable[[Any], Optional[str]]] = None


class IteratorState(BaseModel):
    """Progress of one paginated traversal."""

    cursor: Optional[str] = None
    has_more: bool = True
    pages_fetched: int = 0
    items_yielded: int = 0
    done: bool = False


class DirectOperation(BaseModel):
    """Resolution of a plain symbolic name."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["direct"] = "direct"
    requested_name: str
    operation_name: str


class IteratorOperation(BaseModel):
    """Resolution of a name carrying the ``Iterator`` suffix."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["iterator"] = "iterator"
    requested_name: str
    list_operation_name: str
    list_command: str = "all"
    parameters: dict[str, Any] = Field(default_factory=dict)
    iterator_options: IterationOptions = Field(default_factory=IterationOptions)


ResolvedOperation = Annotated[
    Union[DirectOperation, IteratorOperation], Field(discriminator="kind")
]


# --- Settings ---


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`Settings`."""

    format: Literal["auto", "json", "plain", "rich"] = Field(
        default="auto", description="Default output format when no --json/--plain flag is given"
    )


class Settings(BaseModel):
    """User-wide settings persisted at ``~/.config/manifestapi/config.json``.

    Loaded by :func:`~manifestapi.config.load_settings`. Values here have the
    lowest precedence and are overridden by environment variables and CLI
    flags; see :func:`~manifestapi.config.resolve_settings`.
    """

    api_key_source: Optional[str] = Field(
        default=None, description="Credential source: env:VAR, file:/path or a literal key"
    )
    version: str = DEFAULT_VERSION
    manifest_path: Optional[str] = None
    user_agent: Optional[str] = None
    headers: dict[str, str] = Field(default_factory=dict)
    request: RequestConfig = Field(default_factory=RequestConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
