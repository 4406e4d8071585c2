# marketplace/core/errors.py
"""
Order engine errors and the handlers that render them.

Every error is an HTTPException so services can raise it directly
and FastAPI maps it to a status code. The handlers below wrap all
failures in the envelope the client expects:

    {"success": false, "message": "..."}
"""

import logging
import traceback

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from marketplace.core.config import get_settings

logger = logging.getLogger(__name__)


class EmptyOrder(HTTPException):
    def __init__(self) -> None:
        super().__init__(status.HTTP_400_BAD_REQUEST, "No order items")


class ProductNotFound(HTTPException):
    def __init__(self, product_id: str) -> None:
        self.product_id = product_id
        super().__init__(status.HTTP_404_NOT_FOUND, f"Product not found: {product_id}")


class InsufficientStock(HTTPException):
    def __init__(self, name: str, available: int, requested: int) -> None:
        self.name = name
        self.available = available
        self.requested = requested
        super().__init__(
            status.HTTP_400_BAD_REQUEST,
            f"Insufficient stock for {name}. Available: {available}, Requested: {requested}",
        )


class MixedSellerOrder(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status.HTTP_400_BAD_REQUEST,
            "All items in an order must come from the same seller",
        )


class SellerMismatch(HTTPException):
    def __init__(self, product_id: str) -> None:
        super().__init__(
            status.HTTP_400_BAD_REQUEST,
            f"Seller does not match the listing for product {product_id}",
        )


class OrderNotFound(HTTPException):
    def __init__(self) -> None:
        super().__init__(status.HTTP_404_NOT_FOUND, "Order not found")


class Forbidden(HTTPException):
    def __init__(self, message: str) -> None:
        super().__init__(status.HTTP_403_FORBIDDEN, message)


class InvalidStatusTransition(HTTPException):
    def __init__(self, current: str, new: str) -> None:
        super().__init__(
            status.HTTP_400_BAD_REQUEST,
            f"Invalid status transition: {current} -> {new}",
        )


class StorageError(HTTPException):
    def __init__(self) -> None:
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, "Server Error")


# -------- Handlers --------


def _failure(status_code: int, message: str, **extra: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, **extra},
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    message = str(exc.detail)
    # Unmatched route (raised by the router, not by our handlers)
    if exc.status_code == status.HTTP_404_NOT_FOUND and message == "Not Found":
        message = "Route not found"
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": message},
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Collapse pydantic errors into one message naming the offending fields,
    e.g. "shippingAddress: Field required, items.0.quantity: ...".
    """
    parts = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        field = ".".join(loc)
        parts.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
    return _failure(status.HTTP_400_BAD_REQUEST, ", ".join(parts) or "Invalid request")


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    if get_settings().ENVIRONMENT == "production":
        return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, "Server Error")
    return _failure(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Server Error",
        stack="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
