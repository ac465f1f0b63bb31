from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from grindhub.core.errors import ConflictError, NotFoundError, StoreError, ValidationError
import logging

logger = logging.getLogger(__name__)

# 服务端错误统一返回这句话，不把内部信息暴露给客户端
GENERIC_ERROR_MESSAGE = "Something went wrong"


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
    )


def setup_exception_handlers(app: FastAPI):

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return error_response(exc.message, 400)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        # 请求体格式不对（字段类型错误、不是 JSON 等）
        fields = [str(err["loc"][-1]) for err in exc.errors() if err.get("loc")]
        message = "Invalid request body"
        if fields:
            message = f"Invalid request body: {', '.join(fields)}"
        return error_response(message, 400)

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return error_response(exc.message, 404)

    @app.exception_handler(ConflictError)
    async def conflict_handler(request: Request, exc: ConflictError):
        return error_response(exc.message, 409)

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        logger.error(f"数据库操作失败 {request.method} {request.url.path}: {exc.message}")
        return error_response(GENERIC_ERROR_MESSAGE, 500)

    # 兜底：未处理的异常
    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception(f"未处理的异常 {request.method} {request.url.path}: {exc}")
        return error_response(GENERIC_ERROR_MESSAGE, 500)
