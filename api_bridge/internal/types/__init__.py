"""IR: формат-нейтральная модель типов и операций"""

from .models import (
    IRDiscriminator,
    IREndpoint,
    IREnumValue,
    IRMediaTypeContent,
    IRMetadata,
    IROperation,
    IRParameter,
    IRProperty,
    IRRequestBody,
    IRResponse,
    IRSchema,
    IRSecurityScheme,
    IRType,
    IRTypeKind,
    IRTypeRef,
    IRVariable,
    iter_type_refs,
)
from .registry import TypeRegistry
from .validator import ensure_valid, validate_ir_schema

__all__ = [
    "IRDiscriminator",
    "IREndpoint",
    "IREnumValue",
    "IRMediaTypeContent",
    "IRMetadata",
    "IROperation",
    "IRParameter",
    "IRProperty",
    "IRRequestBody",
    "IRResponse",
    "IRSchema",
    "IRSecurityScheme",
    "IRType",
    "IRTypeKind",
    "IRTypeRef",
    "IRVariable",
    "TypeRegistry",
    "ensure_valid",
    "iter_type_refs",
    "validate_ir_schema",
]
