import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = structlog.get_logger()


class AppError(Exception):
    def __init__(self, status_code: int, detail: str) -> None:
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


class EditError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidImageError(EditError):
    status_code = 400


class LocalTransformError(EditError):
    pass


class ProviderError(EditError):
    status_code = 502

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(message)
        self.provider = provider


class AllProvidersFailedError(EditError):
    status_code = 502

    def __init__(self, failures: list[tuple[str, str]], local_failures: list[str] | None = None) -> None:
        self.failures = list(failures)
        self.local_failures = list(local_failures or [])
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        joined = " | ".join(f"{provider}: {message}" for provider, message in self.failures)
        message = f"All providers failed: {joined}"
        if self.local_failures:
            message += f" (local transform also failed: {'; '.join(self.local_failures)})"
        return message


class NoProviderAvailableError(AllProvidersFailedError):
    def _build_message(self) -> str:
        message = "No provider available: no remote provider credential is configured"
        if self.local_failures:
            message += f" (local transform also failed: {'; '.join(self.local_failures)})"
        return message


class LocalFallbackDisabledError(AllProvidersFailedError):
    def _build_message(self) -> str:
        return f"Local transform failed and remote fallback is disabled: {'; '.join(self.local_failures)}"


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


async def _edit_error_handler(request: Request, exc: EditError) -> JSONResponse:
    logger.warning("edit_failed", path=request.url.path, status_code=exc.status_code, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [{"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]} for e in exc.errors()]
    logger.warning("request_malformed", path=request.url.path, errors=errors)
    message = "; ".join(f"{'.'.join(str(part) for part in e['loc'])}: {e['msg']}" for e in errors)
    return JSONResponse(status_code=500, content={"error": f"Malformed request: {message}"})


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path)
    return JSONResponse(status_code=500, content={"error": f"Internal server error: {exc}"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(EditError, _edit_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
