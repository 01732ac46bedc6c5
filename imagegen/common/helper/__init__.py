from .response_helper import ResponseHelper
from .openapi_helper import generate_responses

__all__ = [
    'ResponseHelper',
    'generate_responses',
]
