"""
Domain layer for texture conversion.
Provides the BTX framing, gateways for the external converter and the
output area, and a service orchestrating per-file jobs and batches so
front-ends (HTTP or Streamlit) share the same core logic.
"""

from .errors import ConversionFailed, MalformedInput, NotFound, StagingFailure, TextureServiceError
from .interfaces import ConverterGateway, ExecutionResult, OutputStorage, build_args
from .models import (
    BatchReport,
    ConversionDirection,
    ConversionError,
    ConversionResult,
    JobOutcome,
    UploadedFile,
)
from .service import ConversionService
