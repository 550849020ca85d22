from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from mangum import Mangum
from config import CORS_ORIGINS, DATABASE_URL, ENVIRONMENT, LOG_LEVEL, init_db
from utils.response_helpers import fail
import logging

from routers.auth.auth import router as auth_router
from routers.users.users import router as users_router
from routers.products.products import router as products_router
from routers.change_requests.change_requests import router as change_requests_router
from routers.orders.orders import router as orders_router
from routers.upload.upload import router as upload_router
from routers.reports.reports import router as reports_router

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

IS_PRODUCTION = ENVIRONMENT == "prod"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Local SQLite databases get their tables on startup, PostgreSQL goes through alembic
    if DATABASE_URL and DATABASE_URL.startswith("sqlite"):
        await init_db()
        logger.info("SQLite tables ensured")
    yield


app = FastAPI(
    title="Packaging Supply API",
    description="Ordering, product listing and review workflows between manufacturers, packaging suppliers and the platform.",
    version="1.0.0",
    root_path="/Prod" if IS_PRODUCTION else "",
    docs_url="/apidocs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(users_router)
app.include_router(products_router)
app.include_router(change_requests_router)
app.include_router(orders_router)
app.include_router(upload_router)
app.include_router(reports_router)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=fail(message),
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
        message = f"{location}: {first.get('msg')}" if location else first.get("msg")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=fail(message))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {str(exc)}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=fail(str(exc) or "Internal server error")
    )


@app.get("/health")
async def health():
    return {"success": True, "data": {"status": "ok", "environment": ENVIRONMENT}}


@app.get("/docs", include_in_schema=False)
async def api_documentation(request: Request):
    openapi_url = "/Prod/openapi.json" if IS_PRODUCTION else "/openapi.json"

    return HTMLResponse(
        f"""
<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1, shrink-to-fit=no">
    <title>Packaging Supply API DOCS</title>

    <script src="https://unpkg.com/@stoplight/elements/web-components.min.js"></script>
    <link rel="stylesheet" href="https://unpkg.com/@stoplight/elements/styles.min.css">
  </head>
  <body>

    <elements-api
      apiDescriptionUrl="{openapi_url}"
      router="hash"
      theme="dark"
    />

  </body>
</html>"""
    )


@app.get("/", response_class=HTMLResponse)
def home():
    """Landing page with links to the API documentation"""
    return """
    <html>
      <head>
        <title>Packaging Supply API</title>
        <style>
          body { font-family: Arial, sans-serif; margin: 40px; background-color: #f8f9fa; }
          h1 { color: #333; }
          ul { list-style-type: none; padding: 0; }
          li { margin: 10px 0; }
          a { color: #0066cc; text-decoration: none; }
        </style>
      </head>
      <body>
        <h1>Packaging Supply API</h1>
        <ul>
          <li><a href="/docs">Spotlight API Documentation</a></li>
          <li><a href="/redoc">Redoc API Documentation</a></li>
          <li><a href="/apidocs">Swagger API Documentation</a></li>
          <li><a href="/openapi.json">OpenAPI Specification</a></li>
          <li><a href="/health">Health Check</a></li>
        </ul>
      </body>
    </html>
    """


handler = Mangum(app)
