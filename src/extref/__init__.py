"""
ExtRef Binding Engine
=====================

ExtRef 绑定的解析与自动连接:
- IED 身份一致性检查
- 绑定候选项查找
- iedName 全局自动绑定
- LDEPF 自动绑定与通道更新
- 同一控制块的 ExtRef 去重
- 单项绑定 / 源控制块更新
"""

from .binder_resolver import get_ext_ref_binders, get_ied_ext_ref_binders
from .dto import (
    BindingCandidate,
    ExtRefBindingInfo,
    ExtRefInfo,
    ExtRefSignalInfo,
    ExtRefSourceInfo,
    LDEPFSettingData,
)
from .ext_ref_service import (
    ExtRefService,
    filter_duplicated_ext_refs,
    is_ext_ref_fed_by_same_control_block,
)
from .ied_name_binder import update_all_ext_ref_ied_names
from .ied_validator import validate_ieds
from .ldepf import manage_binding_for_ldepf
from .ldepf_settings import LDEPFSettings, YamlLDEPFSettings
from .report import SclReportItem, Severity, has_errors

__all__ = [
    "get_ext_ref_binders",
    "get_ied_ext_ref_binders",
    "BindingCandidate",
    "ExtRefBindingInfo",
    "ExtRefInfo",
    "ExtRefSignalInfo",
    "ExtRefSourceInfo",
    "LDEPFSettingData",
    "ExtRefService",
    "filter_duplicated_ext_refs",
    "is_ext_ref_fed_by_same_control_block",
    "update_all_ext_ref_ied_names",
    "validate_ieds",
    "manage_binding_for_ldepf",
    "LDEPFSettings",
    "YamlLDEPFSettings",
    "SclReportItem",
    "Severity",
    "has_errors",
]
