"""
Rendering of tagged use case results as HTTP responses.
"""

from fastapi import status
from fastapi.responses import JSONResponse

from sequestre.presentation.api.middleware.error_handler import status_for


def result_response(result, success_status: int = status.HTTP_200_OK) -> JSONResponse:
    """
    Render a result object with ``success``, ``error`` and ``to_dict``.

    Failed results get the status of their error code.
    """
    status_code = success_status if result.success else status_for(result.error)
    return JSONResponse(status_code=status_code, content=result.to_dict())
