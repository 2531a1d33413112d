from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.api.payments.routes import payments_router
from src.database.connection import dispose_engine
from src.middleware.error import http_exception_handler
from src.middleware.rate_limit import limiter
from src.middleware.timing import add_process_time_header
from src.shared.utils import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await dispose_engine()


app = FastAPI(
    title="Payment Webhooks API",
    description="Inbound payment gateway webhooks and transaction reconciliation.",
    version="1.0.0",
    lifespan=lifespan,
)

app.state.limiter = limiter

app.include_router(payments_router)

app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, http_exception_handler)

app.middleware("http")(add_process_time_header)


@app.get("/", tags=["App"])
async def read_root():
    return {"status": "ok"}
