"""Transport-bound executors for manifest operations.

An :class:`Executor` is what the client factory hands back for a resource.
It owns a lazily created :class:`httpx.Client` and knows the resource's
merged manifest, so any operation the manifest declares can be invoked by
name:

- **Parameter placement** -- ``path`` parameters are substituted into the
  URI template, ``query`` parameters go to the query string, ``body``
  parameters are form-encoded with Stripe's bracket notation
  (``metadata[order]=6735``, ``expand[]=customer``). Undeclared parameters
  follow the verb: query string for GET/DELETE, body otherwise.
- **Declared constraints** -- required parameters, defaults, declared ``type``
  and ``enum`` values are checked before anything is sent.
- **Error mapping** -- non-2xx responses are classified through the
  manifest's ``errors`` table (exact status first, then ``4xx``/``5xx``)
  into :class:`~manifestapi.exceptions.TransportError` subclasses.

Each :meth:`Executor.invoke` performs exactly one round trip. Connection
retries, if any, are left to :class:`httpx.HTTPTransport`.

:class:`Command` is a deferred invocation (operation plus arguments) used by
:class:`~manifestapi.iterator.ResourceIterator` to re-issue a list request
with new pagination parameters.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable, Optional
from urllib.parse import quote

import httpx

from manifestapi.exceptions import (
    AuthenticationError,
    CardError,
    ConnectionError_,
    InvalidUsageError,
    NotFoundError,
    RateLimitError,
    ServerError,
    TimeoutError_,
    TransportError,
    UndefinedOperationError,
    ValidationError_,
)
from manifestapi.models import (
    ClientConfiguration,
    ErrorKind,
    ErrorSpec,
    HTTPMethod,
    Manifest,
    OperationSpec,
    ParameterLocation,
)
from manifestapi.output import debug

ERROR_CLASSES: dict[ErrorKind, type[TransportError]] = {
    ErrorKind.AUTHENTICATION: AuthenticationError,
    ErrorKind.RATE_LIMIT: RateLimitError,
    ErrorKind.VALIDATION: ValidationError_,
    ErrorKind.CARD: CardError,
    ErrorKind.NOT_FOUND: NotFoundError,
    ErrorKind.CONFLICT: ValidationError_,
    ErrorKind.SERVER: ServerError,
    ErrorKind.API: TransportError,
}

_FALLBACK_MESSAGE = "HTTP {status}: {message}"

# "string" is absent: untyped parameters accept any value.
_TYPE_CHECKS: dict[str, Callable[[Any], bool]] = {
    "integer": lambda v: isinstance(v, int) and not isinstance(v, bool),
    "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "boolean": lambda v: isinstance(v, bool),
    "array": lambda v: isinstance(v, (list, tuple)),
    "object": lambda v: isinstance(v, Mapping),
}


class Executor:
    """Invokes the operations of one resource manifest over HTTP.

    Built by :class:`~manifestapi.client.factory.ClientFactory`; not meant to
    be constructed by hand.

    Args:
        description: The merged manifest (service metadata, operations,
            errors) this executor is bound to.
        configuration: The owning client's configuration. Read only.
        headers: Headers captured at build time. Later changes to the
            client's headers do not reach this executor.
        api_key: Credential captured at build time.
        transport: Optional httpx transport, e.g. :class:`httpx.MockTransport`.

    Example::

        with client.call("charges") as charges:
            charge = charges.invoke("find", {"id": "ch_123"})
    """

    def __init__(
        self,
        description: Manifest,
        configuration: ClientConfiguration,
        headers: dict[str, str],
        api_key: str,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._description = description
        self._configuration = configuration
        self._headers = dict(headers)
        self._api_key = api_key
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    def __repr__(self) -> str:
        return f"<Executor {self.resource} ({self.version}): {', '.join(self.operations)}>"

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> Executor:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying :class:`httpx.Client`, if one was opened."""
        if self._client is not None:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    @property
    def resource(self) -> str:
        return self._description.name

    @property
    def version(self) -> str:
        return self._description.version

    @property
    def headers(self) -> dict[str, str]:
        """A copy of the headers captured when the executor was built."""
        return dict(self._headers)

    @property
    def operations(self) -> list[str]:
        return list(self._description.operations)

    def describe(self) -> Manifest:
        """Return the merged manifest this executor was built from."""
        return self._description

    def operation(self, name: str) -> OperationSpec:
        """Return the :class:`OperationSpec` declared for *name*.

        Raises:
            UndefinedOperationError: If the manifest does not declare it.
        """
        spec = self._description.operations.get(name)
        if spec is None:
            raise UndefinedOperationError(
                name,
                f"Undefined operation [{name}] on resource {self.resource}. "
                f"Available: {', '.join(self.operations) or 'none'}",
            )
        return spec

    # ------------------------------------------------------------------ #
    # Invocation
    # ------------------------------------------------------------------ #

    def get_command(self, name: str, parameters: Optional[Mapping[str, Any]] = None) -> Command:
        """Return a deferred invocation of operation *name*.

        Raises:
            UndefinedOperationError: If the manifest does not declare *name*.
        """
        return Command(self, name, self.operation(name), parameters or {})

    def invoke(self, name: str, parameters: Optional[Mapping[str, Any]] = None) -> Any:
        """Invoke operation *name* and return the decoded response body.

        Args:
            name: Operation name from the manifest (``all``, ``find``, ...).
            parameters: Operation arguments keyed by parameter name.

        Returns:
            The JSON-decoded body (usually a ``dict``), the raw text for
            non-JSON bodies, or ``None`` for an empty body.

        Raises:
            UndefinedOperationError: Unknown operation.
            InvalidUsageError: Missing required parameter or value outside
                the declared ``enum``.
            TransportError: Any HTTP or network failure, classified through
                the manifest's error table.
        """
        spec = self.operation(name)
        path, query, body = self._prepare(name, spec, dict(parameters or {}))
        method = spec.http_method.value

        debug(f"{method} {path} ({self.resource}.{name})")
        request_kwargs: dict[str, Any] = {"params": query or None}
        if body:
            request_kwargs["data"] = body

        try:
            response = self._http().request(method, path, **request_kwargs)
        except httpx.TimeoutException as exc:
            raise TimeoutError_(f"Request to {path} timed out: {exc}") from exc
        except httpx.TransportError as exc:
            raise ConnectionError_(f"Connection to {path} failed: {exc}") from exc

        self._raise_for_error(response)
        return decode_body(response)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _http(self) -> httpx.Client:
        if self._client is None:
            settings = self._configuration.request
            transport = self._transport or httpx.HTTPTransport(
                retries=settings.retries, verify=settings.verify_ssl
            )
            self._client = httpx.Client(
                base_url=self._description.service.base_url,
                auth=httpx.BasicAuth(self._api_key, ""),
                headers=self._headers,
                timeout=settings.timeout,
                transport=transport,
            )
        return self._client

    def _prepare(
        self, name: str, spec: OperationSpec, values: dict[str, Any]
    ) -> tuple[str, dict[str, Any], dict[str, Any]]:
        """Validate *values* and split them into path, query and body."""
        for param_name, param in spec.parameters.items():
            if values.get(param_name) is None and param.default is not None:
                values[param_name] = param.default
            if param.required and values.get(param_name) is None:
                raise InvalidUsageError(
                    f"Missing required parameter '{param_name}' for {self.resource}.{name}"
                )
            value = values.get(param_name)
            if value is not None and not _matches_type(value, param.type):
                raise InvalidUsageError(
                    f"Invalid value {value!r} for '{param_name}' in {self.resource}.{name} "
                    f"(expected {param.type})"
                )
            if (
                param.enum_values is not None
                and value is not None
                and value not in param.enum_values
            ):
                allowed = ", ".join(str(v) for v in param.enum_values)
                raise InvalidUsageError(
                    f"Invalid value {value!r} for '{param_name}' "
                    f"in {self.resource}.{name} (allowed: {allowed})"
                )

        for placeholder in spec.path_placeholders:
            if values.get(placeholder) is None:
                raise InvalidUsageError(
                    f"Missing path parameter '{placeholder}' for {self.resource}.{name}"
                )

        path = spec.uri
        query: dict[str, Any] = {}
        body: dict[str, Any] = {}
        body_by_default = spec.http_method not in (HTTPMethod.GET, HTTPMethod.DELETE)

        for key, value in values.items():
            param = spec.parameters.get(key)
            if param is None:
                (body if body_by_default else query)[key] = value
                continue
            wire_name = param.sent_as or key
            if param.location == ParameterLocation.PATH:
                path = path.replace("{" + key + "}", quote(str(value), safe=""))
            elif param.location == ParameterLocation.QUERY:
                query[wire_name] = value
            else:
                body[wire_name] = value

        return path, encode_params(query), encode_params(body)

    def _error_spec(self, status: int) -> Optional[ErrorSpec]:
        errors = self._description.errors
        return errors.get(str(status)) or errors.get(f"{status // 100}xx")

    def _raise_for_error(self, response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return

        body = decode_body(response)
        details: dict[str, Any] = {}
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            details = body["error"]

        message = details.get("message") or ""
        if not message and isinstance(body, str):
            message = body[:200]
        message = message or response.reason_phrase or "no message"

        spec = self._error_spec(status)
        if spec is not None:
            kind, template = spec.kind, spec.message
        else:
            kind = ErrorKind.SERVER if status >= 500 else ErrorKind.API
            template = _FALLBACK_MESSAGE

        fields = {
            "status": status,
            "message": message,
            "type": details.get("type") or "",
            "code": details.get("code") or "",
            "param": details.get("param") or "",
        }
        try:
            rendered = template.format(**fields)
        except (KeyError, IndexError, ValueError):
            rendered = _FALLBACK_MESSAGE.format(**fields)

        raise ERROR_CLASSES[kind](
            rendered,
            status_code=status,
            error_type=details.get("type"),
            code=details.get("code"),
            param=details.get("param"),
            body=body,
        )


class Command:
    """A named operation plus its arguments, ready to execute.

    Commands are immutable from the outside: :meth:`with_parameters`
    returns a new command and leaves the original arguments untouched.
    """

    def __init__(
        self,
        executor: Executor,
        name: str,
        spec: OperationSpec,
        parameters: Mapping[str, Any],
    ) -> None:
        self._executor = executor
        self._name = name
        self._spec = spec
        self._parameters = dict(parameters)

    def __repr__(self) -> str:
        return f"<Command {self._executor.resource}.{self._name} {self._parameters!r}>"

    @property
    def name(self) -> str:
        return self._name

    @property
    def spec(self) -> OperationSpec:
        return self._spec

    @property
    def executor(self) -> Executor:
        return self._executor

    @property
    def parameters(self) -> dict[str, Any]:
        return dict(self._parameters)

    def with_parameters(self, **overrides: Any) -> Command:
        """Return a copy with *overrides* merged over the current arguments."""
        return Command(self._executor, self._name, self._spec, {**self._parameters, **overrides})

    def execute(self) -> Any:
        return self._executor.invoke(self._name, self._parameters)


def encode_params(params: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested parameters into Stripe's bracketed form fields.

    ``None`` values are dropped, booleans become ``"true"``/``"false"``.

    Example::

        >>> encode_params({"metadata": {"order": 6735}, "expand": ["customer"]})
        {'metadata[order]': 6735, 'expand[]': ['customer']}
    """
    flat: dict[str, Any] = {}
    for key, value in params.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if value is None:
            continue
        if isinstance(value, Mapping):
            flat.update(encode_params(value, name))
        elif isinstance(value, (list, tuple)):
            if value and all(isinstance(item, Mapping) for item in value):
                for index, item in enumerate(value):
                    flat.update(encode_params(item, f"{name}[{index}]"))
            else:
                flat[f"{name}[]"] = [_scalar(item) for item in value]
        else:
            flat[name] = _scalar(value)
    return flat


def _matches_type(value: Any, declared: str) -> bool:
    check = _TYPE_CHECKS.get(declared)
    return check is None or check(value)


def _scalar(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


def decode_body(response: httpx.Response) -> Any:
    """JSON-decode the body, falling back to text; ``None`` when empty."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text
