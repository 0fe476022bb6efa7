import time
import uuid

from fastapi import Request

from core.logger import get_logger

REQUEST_ID_HEADER = 'X-Request-ID'

logger = get_logger('http')


async def log_requests(request: Request, call_next):
    """Логирует каждый запрос и прокидывает X-Request-ID."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
    request.state.request_id = request_id
    start = time.perf_counter()

    response = await call_next(request)

    latency_ms = round((time.perf_counter() - start) * 1000, 2)
    response.headers[REQUEST_ID_HEADER] = request_id
    logger.info(
        f'{request.method} {request.url.path}',
        request_id=request_id,
        status=response.status_code,
        latency_ms=latency_ms,
        client=request.client.host if request.client else None,
    )
    return response
