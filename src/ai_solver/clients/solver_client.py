"""HTTP client for the solver endpoint and the syllabus hierarchy."""

from typing import Iterator, Optional

import httpx

from ai_solver.chat.models import RequestContext
from ai_solver.config.settings import settings
from ai_solver.exceptions import TransportError
from ai_solver.syllabus.catalog import SyllabusCatalog
from ai_solver.utils.logger import logger
from ai_solver.utils.structured_logging import get_correlation_id

REQUEST_ID_HEADER = "X-Request-ID"


class StreamHandle:
    """An open streaming response plus its cancellation switch."""

    def __init__(self, response: httpx.Response):
        self._response = response
        self.cancelled = False

    @property
    def status_code(self) -> int:
        return self._response.status_code

    def iter_bytes(self) -> Iterator[bytes]:
        """
        Yield body chunks as they arrive.

        Raises:
            TransportError: The connection failed mid-stream (not after cancel())
        """
        if self.cancelled:
            return
        try:
            for chunk in self._response.iter_bytes():
                if self.cancelled:
                    return
                yield chunk
        except (httpx.HTTPError, httpx.StreamError) as e:
            if self.cancelled:
                logger.debug(f"Stream read stopped after cancel: {e}")
                return
            logger.error(f"Stream read failed: {e}")
            raise TransportError() from e

    def cancel(self) -> None:
        """Stop byte delivery; later iteration yields nothing."""
        self.cancelled = True
        self.close()

    def close(self) -> None:
        self._response.close()


class SolverClient:
    """
    Client for the solver API.

    Args:
        base_url: Root URL of the solver server
        http_client: Optional preconfigured httpx.Client (its base_url is used as-is)
        connect_timeout: Seconds allowed to establish a connection
        read_timeout: Seconds allowed between body chunks; None means no limit
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
        connect_timeout: Optional[float] = None,
        read_timeout: Optional[float] = None,
        endpoint_path: Optional[str] = None,
        syllabus_path: Optional[str] = None,
    ):
        self.endpoint_path = endpoint_path or settings.SOLVER_ENDPOINT_PATH
        self.syllabus_path = syllabus_path or settings.SYLLABUS_ENDPOINT_PATH
        if http_client is None:
            timeout = httpx.Timeout(
                connect=connect_timeout or settings.SOLVER_CONNECT_TIMEOUT,
                read=read_timeout,
                write=None,
                pool=None,
            )
            http_client = httpx.Client(base_url=base_url or settings.SOLVER_BASE_URL, timeout=timeout)
        self.http_client = http_client

    def _headers(self, accept: str) -> dict[str, str]:
        headers = {"Accept": accept}
        correlation_id = get_correlation_id()
        if correlation_id:
            headers[REQUEST_ID_HEADER] = correlation_id
        return headers

    def send(self, context: RequestContext) -> StreamHandle:
        """
        Issue a solve request and return its open byte stream.

        Raises:
            TransportError: Connection failure or non-success status
        """
        request = self.http_client.build_request(
            "POST",
            self.endpoint_path,
            json=context.to_payload(),
            headers=self._headers("text/event-stream"),
        )
        logger.debug(f"POST {request.url} (history={len(context.history)})")

        try:
            response = self.http_client.send(request, stream=True)
        except httpx.HTTPError as e:
            logger.error(f"Solve request failed: {e}")
            raise TransportError() from e

        if not response.is_success:
            detail = _error_detail(response)
            response.close()
            logger.error(f"Solve request rejected: HTTP {response.status_code} {detail}")
            raise TransportError(status_code=response.status_code)

        return StreamHandle(response)

    def get_syllabus(self) -> SyllabusCatalog:
        """
        Fetch the class/subject/chapter hierarchy.

        Raises:
            TransportError: Connection failure, bad status or malformed body
        """
        try:
            response = self.http_client.get(self.syllabus_path, headers=self._headers("application/json"))
            response.raise_for_status()
            catalog = SyllabusCatalog.from_payload(response.json())
        except httpx.HTTPError as e:
            logger.error(f"Syllabus request failed: {e}")
            raise TransportError("Failed to load the syllabus") from e
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Syllabus response malformed: {e}")
            raise TransportError("Failed to load the syllabus") from e

        logger.info(f"Loaded syllabus with {len(catalog.classes)} classes")
        return catalog

    def close(self) -> None:
        self.http_client.close()


def _error_detail(response: httpx.Response) -> str:
    try:
        response.read()
        return response.json().get("detail", "")
    except (httpx.HTTPError, httpx.StreamError, ValueError, AttributeError):
        return ""


def create_solver_client() -> SolverClient:
    """
    Create a SolverClient from settings.

    Raises:
        ConfigurationError: If the solver URL is not configured
    """
    logger.info("Creating solver client")
    settings.validate_client()
    client = SolverClient(
        base_url=settings.SOLVER_BASE_URL,
        connect_timeout=settings.SOLVER_CONNECT_TIMEOUT,
        read_timeout=settings.SOLVER_READ_TIMEOUT,
    )
    logger.success(f"Solver client created for {settings.SOLVER_BASE_URL}")
    return client
