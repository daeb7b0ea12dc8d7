"""
SCL Model Package
=================

IEC 61850-6 SCL 配置文档的解析、访问与保存。

所有访问器都指向同一个 SclDocument 的元素树, 修改原地生效。
"""

__version__ = "1.0.0"

from .data_model import (
    IED,
    LLN0,
    ControlBlock,
    ControlBlockType,
    DataAttributeInstance,
    DataObjectInstance,
    DataSet,
    ExtRef,
    LDeviceStatus,
    LogicalDevice,
    LogicalNode,
    ServiceType,
)
from .data_type_templates import DataTypeTemplates, ResolvedDataPath
from .exceptions import (
    BindingInvariantError,
    PayloadValidationError,
    ResolutionError,
    ScdException,
    StructureLookupError,
)
from .privates import CompasBay, CompasFlow, CompasICDHeader, FlowStatus, PrivateType
from .scd_parser import SCDParser
from .scl_document import Header, SclDocument

__all__ = [
    "IED",
    "LLN0",
    "ControlBlock",
    "ControlBlockType",
    "DataAttributeInstance",
    "DataObjectInstance",
    "DataSet",
    "ExtRef",
    "LDeviceStatus",
    "LogicalDevice",
    "LogicalNode",
    "ServiceType",
    "DataTypeTemplates",
    "ResolvedDataPath",
    "BindingInvariantError",
    "PayloadValidationError",
    "ResolutionError",
    "ScdException",
    "StructureLookupError",
    "CompasBay",
    "CompasFlow",
    "CompasICDHeader",
    "FlowStatus",
    "PrivateType",
    "SCDParser",
    "Header",
    "SclDocument",
]
