"""
techdash.pipeline.exchange

Per-request state shared by pipeline stages.

Responsibilities:
- Hold the ASGI scope and the (possibly replayed) receive channel.
- Collect response hooks that stages register to decorate the eventual response.
- Track resources (parsed forms) to release once the response is sent.
"""

from __future__ import annotations

from collections.abc import Callable

from starlette.datastructures import FormData, Headers, MutableHeaders, State
from starlette.requests import Request
from starlette.types import Message, Receive, Scope

ResponseHook = Callable[[MutableHeaders], None]


class Exchange:
    def __init__(self, scope: Scope, receive: Receive) -> None:
        self.scope = scope
        self._receive = receive
        self._body: bytes | None = None
        self.headers = Headers(scope=scope)
        self.response_hooks: list[ResponseHook] = []
        self._forms: list[FormData] = []

    @property
    def method(self) -> str:
        return self.scope["method"]

    @property
    def path(self) -> str:
        return self.scope["path"]

    @property
    def client_address(self) -> str:
        client = self.scope.get("client")
        return client[0] if client else "unknown"

    @property
    def state(self) -> State:
        # Same dict Starlette exposes as `request.state` to handlers.
        return State(self.scope.setdefault("state", {}))

    @property
    def body(self) -> bytes | None:
        return self._body

    @property
    def receive(self) -> Receive:
        """
        The receive channel for the next consumer. Once the body is buffered, each
        access returns a fresh channel that replays it before deferring to the
        server (for disconnect notifications).
        """

        if self._body is None:
            return self._receive
        body = self._body
        upstream = self._receive
        replayed = False

        async def receive() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await upstream()

        return receive

    async def read_raw(self) -> Message:
        return await self._receive()

    def buffer(self, body: bytes) -> None:
        self._body = body

    @property
    def request(self) -> Request:
        return Request(self.scope, self.receive)

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "").split(";", 1)[0].strip().lower()

    def add_response_hook(self, hook: ResponseHook) -> None:
        self.response_hooks.append(hook)

    def apply_response_hooks(self, message: Message) -> None:
        headers = MutableHeaders(scope=message)
        for hook in self.response_hooks:
            hook(headers)

    def keep_form(self, form: FormData) -> None:
        self._forms.append(form)

    async def close(self) -> None:
        for form in self._forms:
            await form.close()
        self._forms.clear()

    def __repr__(self) -> str:
        return f"Exchange(method={self.method!r}, path={self.path!r})"
