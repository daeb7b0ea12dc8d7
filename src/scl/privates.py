"""
CoMPAS Private Elements
=======================

SCL <Private type="COMPAS-..."> 扩展元素的访问器:
- compas:ICDHeader  IED 的身份头信息
- compas:Bay        IED 所属间隔
- compas:Flow       ExtRef 对应的信号流
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional
from xml.etree import ElementTree as ET

from .exceptions import ScdException
from .utils import equals_or_not_set, findall_elements, local_name, set_attribute


COMPAS_NAMESPACE = "https://www.lfenergy.org/compas/extension/v1"


class PrivateType(Enum):
    """CoMPAS Private 类型 (Private@type, 内部元素名)"""
    COMPAS_ICDHEADER = ("COMPAS-ICDHeader", "ICDHeader")
    COMPAS_BAY = ("COMPAS-Bay", "Bay")
    COMPAS_FLOW = ("COMPAS-Flow", "Flow")

    def __init__(self, private_type: str, element_name: str):
        self.private_type = private_type
        self.element_name = element_name


class FlowStatus(Enum):
    """compas:Flow 状态"""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    UNTESTED = "UNTESTED"


def extract_compas_privates(parent: ET.Element, private_type: PrivateType) -> List[ET.Element]:
    """
    提取父元素下指定类型的所有 CoMPAS 扩展元素

    Args:
        parent: 持有 Private 子元素的 SCL 元素
        private_type: Private 类型

    Returns:
        compas 扩展元素列表
    """
    elements = []
    for private_elem in findall_elements(parent, "Private"):
        if private_elem.get("type") != private_type.private_type:
            continue
        elements.extend(
            child for child in private_elem
            if local_name(child.tag) == private_type.element_name
        )
    return elements


def extract_compas_private(parent: ET.Element, private_type: PrivateType) -> Optional[ET.Element]:
    """提取唯一的 CoMPAS 扩展元素, 多于一个时抛出异常"""
    elements = extract_compas_privates(parent, private_type)
    if len(elements) > 1:
        raise ScdException(
            f"Expecting maximum 1 element of type {private_type.element_name} "
            f"in private {private_type.private_type}, but got more"
        )
    return elements[0] if elements else None


@dataclass
class CompasICDHeader:
    """compas:ICDHeader - IED 身份头"""
    element: ET.Element

    @property
    def icd_system_version_uuid(self) -> Optional[str]:
        return self.element.get("ICDSystemVersionUUID")

    @property
    def ied_name(self) -> Optional[str]:
        return self.element.get("IEDName")

    @property
    def ied_type(self) -> Optional[str]:
        return self.element.get("IEDType")

    @property
    def ied_redundancy(self) -> Optional[str]:
        return self.element.get("IEDredundancy")

    @property
    def ied_instance(self) -> Optional[str]:
        return self.element.get("IEDSystemVersioninstance")

    @property
    def vendor_name(self) -> Optional[str]:
        return self.element.get("VendorName")

    def to_dict(self) -> dict:
        """转换为字典"""
        return dict(self.element.attrib)


@dataclass
class CompasBay:
    """compas:Bay - 间隔标识"""
    element: ET.Element

    @property
    def uuid(self) -> Optional[str]:
        return self.element.get("UUID")


@dataclass
class CompasFlow:
    """compas:Flow - ExtRef 信号流, dataStreamKey 对应 ExtRef@desc"""
    element: ET.Element

    @property
    def data_stream_key(self) -> Optional[str]:
        return self.element.get("dataStreamKey")

    @property
    def ext_ref_ied_name(self) -> Optional[str]:
        return self.element.get("ExtRefiedName")

    @ext_ref_ied_name.setter
    def ext_ref_ied_name(self, value: Optional[str]):
        set_attribute(self.element, "ExtRefiedName", value)

    @property
    def ext_ref_ld_inst(self) -> Optional[str]:
        return self.element.get("ExtRefldinst")

    @property
    def ext_ref_ln_class(self) -> Optional[str]:
        return self.element.get("ExtReflnClass")

    @property
    def ext_ref_ln_inst(self) -> Optional[str]:
        return self.element.get("ExtReflnInst")

    @property
    def ext_ref_prefix(self) -> Optional[str]:
        return self.element.get("ExtRefprefix")

    @property
    def flow_status(self) -> Optional[FlowStatus]:
        value = self.element.get("FlowStatus")
        for status in FlowStatus:
            if status.value == value:
                return status
        return None

    def matches(self, ext_ref) -> bool:
        """Flow 上已设置的每个属性都必须与 ExtRef 的对应属性相等"""
        return (
            equals_or_not_set(self.data_stream_key, ext_ref.desc)
            and equals_or_not_set(self.ext_ref_ied_name, ext_ref.ied_name)
            and equals_or_not_set(self.ext_ref_ld_inst, ext_ref.ld_inst)
            and equals_or_not_set(self.ext_ref_prefix, ext_ref.prefix)
            and equals_or_not_set(self.ext_ref_ln_class, ext_ref.ln_class)
            and equals_or_not_set(self.ext_ref_ln_inst, ext_ref.ln_inst)
        )

    def clear_binding(self) -> None:
        """清除 Flow 上记录的绑定信息"""
        for name in ("ExtRefiedName", "ExtRefldinst", "ExtReflnClass", "ExtReflnInst", "ExtRefprefix"):
            set_attribute(self.element, name, None)
