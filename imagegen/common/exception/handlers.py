"""
全局异常处理：所有异常都转换为统一的 JSON 错误响应
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException
from tortoise.exceptions import IntegrityError

from imagegen.common.exception.exception import HttpBusinessException
from imagegen.common.exception.http_error_code_enum import HttpErrorCodeEnum
from imagegen.common.helper import ResponseHelper
from imagegen.core.logger_util import logger


def _first_validation_message(exc: RequestValidationError) -> str:
    """
    取第一条校验错误作为提示，字段路径去掉 body / query 前缀
    """
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path"))
        error_type = error.get("type", "")
        msg = error.get("msg", "")
        if error_type == "missing":
            return f"缺少必填字段: {field}"
        if error_type == "value_error":
            # pydantic 会加上 "Value error, " 前缀
            return msg.removeprefix("Value error, ")
        return f"{field}: {msg}" if field else msg
    return HttpErrorCodeEnum.PARAM_ERROR.message


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(HttpBusinessException)
    async def business_exception_handler(request: Request, exc: HttpBusinessException):
        if exc.status_code >= 500:
            logger.error(f"❌ 业务异常 {request.url.path} ==> [{exc.code}] {exc.message}")
        else:
            logger.warning(f"⚠️ 业务异常 {request.url.path} ==> [{exc.code}] {exc.message}")
        return ResponseHelper.error(
            code=exc.code,
            message=exc.message,
            data=exc.data,
            status_code=exc.status_code
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"⚠️ 参数校验错误 {request.url.path} ==> {exc.errors()}")
        return ResponseHelper.error_with_error_code(HttpErrorCodeEnum.PARAM_ERROR, _first_validation_message(exc))

    @app.exception_handler(IntegrityError)
    async def integrity_exception_handler(request: Request, exc: IntegrityError):
        # 并发下唯一索引兜底，如同时注册同一邮箱
        logger.warning(f"⚠️ 唯一约束冲突 {request.url.path} ==> {exc}")
        return ResponseHelper.error_with_error_code(HttpErrorCodeEnum.DATA_DUPLICATE)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        if exc.status_code == 405:
            return ResponseHelper.error_with_error_code(HttpErrorCodeEnum.METHOD_NOT_ALLOWED)
        if exc.status_code == 404:
            return ResponseHelper.error_with_error_code(HttpErrorCodeEnum.NOT_FOUND, "接口不存在")
        logger.error(f"❌ HTTP异常 {request.url.path} ==> {exc.status_code} {exc.detail}")
        return ResponseHelper.error(message=str(exc.detail), status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception(f"❌ 系统错误 {request.url.path} ==> {type(exc).__name__}: {exc}")
        return ResponseHelper.error()
