import logging
import os
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, File, Path, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from . import database, schemas
from .errors import SweetShopError
from .logging_config import setup_logging
from .service import SweetService

logger = logging.getLogger(__name__)


def _allowed_origins() -> List[str]:
    """
    Parse CORS_ALLOWED_ORIGINS from env.

    Accepts comma-separated origins. If unset, defaults to local dev ports.
    """
    raw = os.getenv("CORS_ALLOWED_ORIGINS", "")
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    return origins or [
        "http://localhost:5173",
        "http://localhost:3001",
        "http://localhost:8080",
    ]


def get_service(db: Session = Depends(database.get_db)) -> SweetService:
    return SweetService(db)


router = APIRouter(prefix="/api/sweets", tags=["sweets"])


@router.post("", response_model=schemas.SweetOut, status_code=201)
def create_sweet(payload: schemas.SweetCreate, service: SweetService = Depends(get_service)):
    return service.create_sweet(payload)


@router.get("", response_model=list[schemas.SweetOut])
def list_sweets(
    name: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    sort_by: Optional[schemas.SortField] = Query(None, alias="sortBy"),
    order: schemas.SortOrder = schemas.SortOrder.asc,
    service: SweetService = Depends(get_service),
):
    filters = schemas.SweetFilter(
        name=name, category=category, min_price=min_price, max_price=max_price
    )
    return service.list_sweets(filters, schemas.SweetSort(sort_by=sort_by, order=order))


# Debe ir antes de las rutas con {sweet_id}
@router.post("/import", response_model=schemas.ImportResult, status_code=201)
def import_sweets(file: UploadFile = File(...), service: SweetService = Depends(get_service)):
    return service.import_csv(file.file.read())


@router.get("/{sweet_id}", response_model=schemas.SweetOut)
def get_sweet(sweet_id: int = Path(gt=0), service: SweetService = Depends(get_service)):
    return service.get_sweet(sweet_id)


@router.put("/{sweet_id}", response_model=schemas.SweetOut)
def update_sweet(
    payload: schemas.SweetUpdate,
    sweet_id: int = Path(gt=0),
    service: SweetService = Depends(get_service),
):
    return service.update_sweet(sweet_id, payload)


@router.delete("/{sweet_id}", response_model=schemas.SweetOut)
def delete_sweet(sweet_id: int = Path(gt=0), service: SweetService = Depends(get_service)):
    return service.delete_sweet(sweet_id)


@router.post("/{sweet_id}/purchase", response_model=schemas.SweetOut)
def purchase_sweet(
    body: schemas.QuantityChange,
    sweet_id: int = Path(gt=0),
    service: SweetService = Depends(get_service),
):
    return service.purchase_sweet(sweet_id, body.quantity)


@router.post("/{sweet_id}/restock", response_model=schemas.SweetOut)
def restock_sweet(
    body: schemas.QuantityChange,
    sweet_id: int = Path(gt=0),
    service: SweetService = Depends(get_service),
):
    return service.restock_sweet(sweet_id, body.quantity)


async def handle_sweet_shop_error(request: Request, exc: SweetShopError):
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    fields = list(dict.fromkeys(str(err["loc"][-1]) for err in exc.errors() if err.get("loc")))
    return JSONResponse(
        {"error": f"Invalid request: {', '.join(fields)}", "fields": fields},
        status_code=400,
    )


def create_app(engine: Optional[Engine] = None) -> FastAPI:
    """Build the API bound to ``engine`` (defaults to DATABASE_URL)."""
    engine = engine or database.make_engine()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging()
        # Crear tablas al iniciar (sin migraciones)
        database.init_db(app.state.engine)
        logger.info("Sweet shop API ready")
        yield

    app = FastAPI(title="Sweet Shop API", lifespan=lifespan)
    app.state.engine = engine
    app.state.session_factory = database.make_session_factory(engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_allowed_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        expose_headers=["Content-Length", "X-Total-Count"],
        max_age=600,
    )
    app.add_exception_handler(SweetShopError, handle_sweet_shop_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    app.include_router(router)
    return app


app = create_app()
