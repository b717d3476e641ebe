"""
Catalog routes: dashboard management of products, plans, deliverables, order bumps, checkout settings and pixels
"""
from typing import List

from fastapi import APIRouter, Depends, status

from api.dependencies import get_catalog_service, require_admin
from application.dtos.catalog import (
    CheckoutSettingsIn,
    CheckoutSettingsOut,
    DeliverableIn,
    DeliverableOut,
    OrderBumpIn,
    OrderBumpOut,
    PixelIn,
    PixelOut,
    PlanIn,
    PlanOut,
    ProductIn,
    ProductOut,
    ProductUpdate,
)
from application.services.catalog_service import CatalogApplicationService
from core.i18n import t
from core.response import Response as ApiResponse, success_response

router = APIRouter(
    prefix="/catalog",
    tags=["Catalog"],
    dependencies=[Depends(require_admin)],
)


# Products

@router.get("/products", summary="List products", response_model=ApiResponse[List[ProductOut]])
async def list_products(service: CatalogApplicationService = Depends(get_catalog_service)):
    return success_response(data=await service.list_products(), message=t("catalog.list"))


@router.post(
    "/products",
    summary="Create product",
    response_model=ApiResponse[ProductOut],
    status_code=status.HTTP_201_CREATED,
)
async def create_product(payload: ProductIn, service: CatalogApplicationService = Depends(get_catalog_service)):
    """
    Create a product, optionally with plans, a deliverable and linked order bumps

    - **plans**: prices in cents
    - **deliverable**: file needs file_url, redirect needs redirect_url
    """
    return success_response(data=await service.create_product(payload), message=t("catalog.saved"))


@router.get("/products/{product_id}", summary="Get product", response_model=ApiResponse[ProductOut])
async def get_product(product_id: str, service: CatalogApplicationService = Depends(get_catalog_service)):
    return success_response(data=await service.get_product(product_id), message=t("catalog.list"))


@router.patch("/products/{product_id}", summary="Update product", response_model=ApiResponse[ProductOut])
async def update_product(
    product_id: str,
    payload: ProductUpdate,
    service: CatalogApplicationService = Depends(get_catalog_service),
):
    return success_response(data=await service.update_product(product_id, payload), message=t("catalog.saved"))


@router.delete("/products/{product_id}", summary="Delete product")
async def delete_product(product_id: str, service: CatalogApplicationService = Depends(get_catalog_service)):
    await service.delete_product(product_id)
    return success_response(data={"id": product_id}, message=t("catalog.deleted"))


# Plans

@router.post(
    "/products/{product_id}/plans",
    summary="Add plan",
    response_model=ApiResponse[PlanOut],
    status_code=status.HTTP_201_CREATED,
)
async def add_plan(product_id: str, payload: PlanIn, service: CatalogApplicationService = Depends(get_catalog_service)):
    return success_response(data=await service.add_plan(product_id, payload), message=t("catalog.saved"))


@router.put("/products/{product_id}/plans/{plan_id}", summary="Update plan", response_model=ApiResponse[PlanOut])
async def update_plan(
    product_id: str,
    plan_id: str,
    payload: PlanIn,
    service: CatalogApplicationService = Depends(get_catalog_service),
):
    return success_response(data=await service.update_plan(product_id, plan_id, payload), message=t("catalog.saved"))


@router.delete("/products/{product_id}/plans/{plan_id}", summary="Delete plan")
async def delete_plan(product_id: str, plan_id: str, service: CatalogApplicationService = Depends(get_catalog_service)):
    await service.delete_plan(product_id, plan_id)
    return success_response(data={"id": plan_id}, message=t("catalog.deleted"))


@router.put("/products/{product_id}/deliverable", summary="Set deliverable", response_model=ApiResponse[DeliverableOut])
async def set_deliverable(
    product_id: str,
    payload: DeliverableIn,
    service: CatalogApplicationService = Depends(get_catalog_service),
):
    return success_response(data=await service.set_deliverable(product_id, payload), message=t("catalog.saved"))


# Order bumps

@router.get("/order-bumps", summary="List order bumps", response_model=ApiResponse[List[OrderBumpOut]])
async def list_order_bumps(service: CatalogApplicationService = Depends(get_catalog_service)):
    return success_response(data=await service.list_order_bumps(), message=t("catalog.list"))


@router.post(
    "/order-bumps",
    summary="Create order bump",
    response_model=ApiResponse[OrderBumpOut],
    status_code=status.HTTP_201_CREATED,
)
async def create_order_bump(payload: OrderBumpIn, service: CatalogApplicationService = Depends(get_catalog_service)):
    return success_response(data=await service.create_order_bump(payload), message=t("catalog.saved"))


@router.put("/order-bumps/{bump_id}", summary="Update order bump", response_model=ApiResponse[OrderBumpOut])
async def update_order_bump(
    bump_id: str,
    payload: OrderBumpIn,
    service: CatalogApplicationService = Depends(get_catalog_service),
):
    return success_response(data=await service.update_order_bump(bump_id, payload), message=t("catalog.saved"))


@router.delete("/order-bumps/{bump_id}", summary="Delete order bump")
async def delete_order_bump(bump_id: str, service: CatalogApplicationService = Depends(get_catalog_service)):
    await service.delete_order_bump(bump_id)
    return success_response(data={"id": bump_id}, message=t("catalog.deleted"))


# Checkout settings

@router.get("/settings", summary="Checkout settings", response_model=ApiResponse[CheckoutSettingsOut])
async def get_checkout_settings(service: CatalogApplicationService = Depends(get_catalog_service)):
    return success_response(data=await service.get_checkout_settings(), message=t("catalog.list"))


@router.put("/settings", summary="Update checkout settings", response_model=ApiResponse[CheckoutSettingsOut])
async def update_checkout_settings(
    payload: CheckoutSettingsIn,
    service: CatalogApplicationService = Depends(get_catalog_service),
):
    """Only the submitted fields change."""
    return success_response(data=await service.update_checkout_settings(payload), message=t("catalog.saved"))


# Pixels

@router.get("/pixels", summary="List pixels", response_model=ApiResponse[List[PixelOut]])
async def list_pixels(service: CatalogApplicationService = Depends(get_catalog_service)):
    return success_response(data=await service.list_pixels(), message=t("catalog.list"))


@router.post(
    "/pixels",
    summary="Add pixel",
    response_model=ApiResponse[PixelOut],
    status_code=status.HTTP_201_CREATED,
)
async def create_pixel(payload: PixelIn, service: CatalogApplicationService = Depends(get_catalog_service)):
    return success_response(data=await service.create_pixel(payload), message=t("catalog.saved"))


@router.delete("/pixels/{pixel_id}", summary="Delete pixel")
async def delete_pixel(pixel_id: str, service: CatalogApplicationService = Depends(get_catalog_service)):
    await service.delete_pixel(pixel_id)
    return success_response(data={"id": pixel_id}, message=t("catalog.deleted"))
