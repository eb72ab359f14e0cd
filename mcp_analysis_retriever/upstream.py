"""
Upstream analysis API client.

One POST per (client, analysis type). Every response is normalized into
one of two outcome variants:

- StructuredAnalysis: 2xx with {"resultado": {"full_analysis", "market_summary"?}}
- PlainMessage: 404, the upstream's "no data" signal (not an error)

Everything else raises an UpstreamError subclass. Network failures,
hard status failures and non-JSON bodies each get their own type so the
caller can tell a broken upstream from a broken connection.
"""

import json
from dataclasses import dataclass
from typing import Any

import httpx

from mcp_analysis_retriever.config import Settings
from mcp_analysis_retriever.logging_config import get_logger

logger = get_logger(__name__)

NOT_FOUND_MESSAGE = "No se encontró ningún análisis para los criterios especificados."

# Body excerpt kept in error messages
BODY_EXCERPT_CHARS = 500


class UpstreamError(Exception):
    """Base class for every upstream failure"""


class UpstreamConfigError(UpstreamError):
    """No upstream endpoint configured"""


class UpstreamStatusError(UpstreamError):
    """Upstream answered with a non-2xx status other than 404"""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"API de análisis error {status_code}: {body}")


class UpstreamInvalidJSONError(UpstreamError):
    """Upstream answered 2xx but the body is not the expected JSON"""

    def __init__(self, status_code: int, body: str, reason: str = "no es JSON válido") -> None:
        self.status_code = status_code
        self.body = body
        excerpt = body[:BODY_EXCERPT_CHARS]
        super().__init__(
            f"La respuesta de la API de análisis {reason} "
            f"(status {status_code}): {excerpt}"
        )


class UpstreamConnectionError(UpstreamError):
    """Transport-level failure: refused, timed out, reset..."""


@dataclass(frozen=True)
class StructuredAnalysis:
    """A stored analysis returned by the upstream"""

    full_analysis: str
    market_summary: str | None = None


@dataclass(frozen=True)
class PlainMessage:
    """Human-readable message in place of an analysis (e.g. nothing stored)"""

    text: str


FetchOutcome = StructuredAnalysis | PlainMessage


def _as_text(value: Any) -> str:  # noqa: ANN401
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, indent=2, ensure_ascii=False)


def parse_success_body(status_code: int, body: str) -> FetchOutcome:
    """Turn a 2xx body into an outcome, raising on anything non-JSON"""
    try:
        data = json.loads(body)
    except ValueError:
        raise UpstreamInvalidJSONError(status_code, body) from None

    if not isinstance(data, dict) or "resultado" not in data:
        raise UpstreamInvalidJSONError(status_code, body, reason="no contiene 'resultado'")

    resultado = data["resultado"]
    if isinstance(resultado, dict):
        market_summary = resultado.get("market_summary")
        return StructuredAnalysis(
            full_analysis=_as_text(resultado.get("full_analysis")),
            market_summary=_as_text(market_summary) if market_summary else None,
        )
    # A bare string/number result has no sections to split out
    return PlainMessage(_as_text(resultado))


def parse_not_found_body(body: str) -> PlainMessage:
    """404 is the upstream's "no data" answer, never an error"""
    try:
        data = json.loads(body)
    except ValueError:
        return PlainMessage(NOT_FOUND_MESSAGE)
    mensaje = data.get("mensaje") if isinstance(data, dict) else None
    return PlainMessage(mensaje or NOT_FOUND_MESSAGE)


class AnalysisClient:
    """Sends analysis requests to the configured upstream endpoint.

    A fresh httpx.AsyncClient is opened per session() so no connection
    state outlives a tool call. Pass `transport` to route requests
    somewhere other than the network (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self._transport = transport

    def session(self) -> httpx.AsyncClient:
        if not self.settings.api_url:
            msg = "ANALYSIS_API_URL no está configurada"
            raise UpstreamConfigError(msg)
        return httpx.AsyncClient(
            transport=self._transport,
            timeout=httpx.Timeout(self.settings.api_timeout),
            follow_redirects=True,
            headers={"Content-Type": "application/json"},
        )

    async def fetch_one(
        self, client: httpx.AsyncClient, client_id: int, analysis_type: str
    ) -> FetchOutcome:
        """Fetch the latest analysis of one type for one client"""
        payload = {"id_cliente": client_id, "tipo": analysis_type}
        try:
            response = await client.post(self.settings.endpoint, json=payload)
            logger.info(
                f"upstream {analysis_type} cliente={client_id} -> {response.status_code}"
            )
            if response.status_code == httpx.codes.NOT_FOUND:
                return parse_not_found_body(response.text)

            if not response.is_success:
                try:
                    body = response.text
                except (UnicodeDecodeError, LookupError):
                    body = ""
                raise UpstreamStatusError(response.status_code, body)

            return parse_success_body(response.status_code, response.text)
        except httpx.RequestError as e:
            logger.warning(f"upstream connection failed: {e!r}")
            msg = f"Error conectando con la API de análisis: {e or type(e).__name__}"
            raise UpstreamConnectionError(msg) from e
