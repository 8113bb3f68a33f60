from fastapi import FastAPI, APIRouter, HTTPException, Depends
from starlette.middleware.cors import CORSMiddleware
from motor.motor_asyncio import AsyncIOMotorClient
import logging
from pydantic import BaseModel, Field
from typing import List, Optional
from decimal import Decimal
from datetime import datetime, timezone

from packaging_conversion_engine import quantize
from packaging_engine import PackagingEngine
from packaging_errors import PackagingError, PackagingNotFoundError
from packaging_models import (
    HierarchyWarning,
    PackagingDefinition,
    PackagingNode,
    PickPlan,
    StockByPackagingLine,
    StockSummary,
)
from packaging_repository import MongoPackagingRepository
from packaging_settings import load_settings

settings = load_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# MongoDB connection (created lazily so the app imports without a database)
client: Optional[AsyncIOMotorClient] = None


def get_repository() -> MongoPackagingRepository:
    global client
    if client is None:
        client = AsyncIOMotorClient(settings.mongo_url)
    return MongoPackagingRepository(
        client[settings.db_name],
        packaging_collection=settings.packaging_collection,
        stock_collection=settings.stock_collection,
    )


app = FastAPI(title="Warehouse Packaging API")

# ==================== CORS CONFIGURATION (MUST BE FIRST) ====================
app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "X-Requested-With",
        "Accept",
        "Origin",
    ],
    max_age=600,  # Cache preflight for 10 minutes
)

# ==================== HEALTH ENDPOINT (ROOT LEVEL) ====================
@app.get("/api/health")
async def health_check():
    """Health check endpoint for monitoring"""
    return {
        "ok": True,
        "time": datetime.now(timezone.utc).isoformat(),
        "service": "Warehouse Packaging API",
        "version": "1.0.0"
    }

api_router = APIRouter(prefix="/api")


def raise_http_error(error: PackagingError):
    """PACKAGING_NOT_FOUND → 404, every other engine error → 400"""
    status_code = 404 if isinstance(error, PackagingNotFoundError) else 400
    raise HTTPException(status_code=status_code, detail=error.as_dict())


# ==================== MODELS ====================

class ProductPackagingResponse(BaseModel):
    product_id: str
    packagings: List[PackagingDefinition]
    stock: List[StockByPackagingLine]
    consolidated_base_units: Decimal


class ScanBarcodeRequest(BaseModel):
    barcode: str = Field(min_length=1)


class ConvertQuantityRequest(BaseModel):
    quantity: Decimal
    from_packaging_id: str
    to_packaging_id: str


class ConvertQuantityResponse(BaseModel):
    original_quantity: Decimal
    from_packaging_id: str
    to_packaging_id: str
    conversion_factor: Decimal
    converted_quantity: Decimal
    display_quantity: Decimal  # converted_quantity rounded for display
    base_units: Decimal


class OptimizePickingRequest(BaseModel):
    product_id: str
    requested_base_units: Decimal


# ==================== PACKAGING ROUTES ====================

@api_router.get("/packaging/products/{product_id}", response_model=ProductPackagingResponse)
async def get_product_packagings(
    product_id: str,
    include_inactive: bool = False,
    repository: MongoPackagingRepository = Depends(get_repository)
):
    """Packagings of a product with raw stock and consolidated total"""
    try:
        engine = PackagingEngine(await repository.load_product_snapshot(product_id))
        return ProductPackagingResponse(
            product_id=product_id,
            packagings=engine.get_packagings_by_product(product_id, include_inactive=include_inactive),
            stock=engine.get_stock_by_packaging(product_id),
            consolidated_base_units=engine.get_stock_consolidated(product_id),
        )
    except PackagingError as e:
        raise_http_error(e)


@api_router.get("/packaging/products/{product_id}/hierarchy", response_model=List[PackagingNode])
async def get_packaging_hierarchy(product_id: str, repository: MongoPackagingRepository = Depends(get_repository)):
    try:
        engine = PackagingEngine(await repository.load_product_snapshot(product_id))
        return engine.get_packaging_hierarchy(product_id)
    except PackagingError as e:
        raise_http_error(e)


@api_router.get("/packaging/products/{product_id}/stock", response_model=StockSummary)
async def get_stock_summary(product_id: str, repository: MongoPackagingRepository = Depends(get_repository)):
    try:
        engine = PackagingEngine(await repository.load_product_snapshot(product_id))
        return engine.get_stock_summary(product_id)
    except PackagingError as e:
        raise_http_error(e)


@api_router.get("/packaging/products/{product_id}/audit", response_model=List[HierarchyWarning])
async def audit_packaging_hierarchy(product_id: str, repository: MongoPackagingRepository = Depends(get_repository)):
    """Catalog data-quality warnings (level vs. size ordering, dangling parents)"""
    try:
        engine = PackagingEngine(await repository.load_product_snapshot(product_id))
        return engine.audit_level_ordering(product_id)
    except PackagingError as e:
        raise_http_error(e)


@api_router.post("/packaging/scan", response_model=PackagingDefinition)
async def scan_barcode(data: ScanBarcodeRequest, repository: MongoPackagingRepository = Depends(get_repository)):
    try:
        engine = PackagingEngine(await repository.load_barcode_snapshot(data.barcode))
        return engine.get_packaging_by_barcode(data.barcode)
    except PackagingError as e:
        raise_http_error(e)


@api_router.post("/packaging/convert", response_model=ConvertQuantityResponse)
async def convert_quantity(data: ConvertQuantityRequest, repository: MongoPackagingRepository = Depends(get_repository)):
    """Convert a quantity between two packaging levels of the same product"""
    try:
        engine = PackagingEngine(
            await repository.load_packaging_snapshot([data.from_packaging_id, data.to_packaging_id])
        )
        converted = engine.convert_between(data.quantity, data.from_packaging_id, data.to_packaging_id)
        return ConvertQuantityResponse(
            original_quantity=data.quantity,
            from_packaging_id=data.from_packaging_id,
            to_packaging_id=data.to_packaging_id,
            conversion_factor=engine.calculate_conversion_factor(data.from_packaging_id, data.to_packaging_id),
            converted_quantity=converted,
            display_quantity=quantize(converted, settings.display_decimal_places),
            base_units=engine.convert_to_base_units(data.quantity, data.from_packaging_id),
        )
    except PackagingError as e:
        raise_http_error(e)


@api_router.post("/packaging/optimize-picking", response_model=PickPlan)
async def optimize_picking(data: OptimizePickingRequest, repository: MongoPackagingRepository = Depends(get_repository)):
    try:
        engine = PackagingEngine(await repository.load_product_snapshot(data.product_id))
        return engine.optimize_picking_by_packaging(data.product_id, data.requested_base_units)
    except PackagingError as e:
        raise_http_error(e)


@api_router.get("/packaging/{packaging_id}", response_model=PackagingDefinition)
async def get_packaging(packaging_id: str, repository: MongoPackagingRepository = Depends(get_repository)):
    try:
        engine = PackagingEngine(await repository.load_packaging_snapshot([packaging_id]))
        return engine.get_packaging(packaging_id)
    except PackagingError as e:
        raise_http_error(e)


app.include_router(api_router)


@app.on_event("startup")
async def startup_event():
    try:
        await get_repository().create_indexes()
        logger.info("Packaging indexes created")
    except Exception as e:
        logger.warning(f"Failed to create packaging indexes: {e}")


@app.on_event("shutdown")
async def shutdown_db_client():
    if client is not None:
        client.close()
