"""
SCL Data Model Accessors
========================

SCL 配置文档的访问器层次结构:
- IED (Intelligent Electronic Device)
- LogicalDevice (LDevice)
- LogicalNode (LN0 / LN)
- DataObjectInstance (DOI) / DataAttributeInstance (DAI)
- ExtRef / ControlBlock / DataSet

访问器只持有共享文档中某个 XML 元素的引用, 数据始终保存在
SclDocument 的元素树中, 修改会直接反映到文档。

基于IEC 61850-6标准
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional
from xml.etree import ElementTree as ET

from loguru import logger

from .exceptions import ScdException, StructureLookupError
from .privates import (
    CompasBay, CompasFlow, CompasICDHeader, PrivateType,
    extract_compas_private, extract_compas_privates,
)
from .utils import (
    equals_or_both_blank, find_child_by_name, find_element, findall_elements,
    is_blank, local_name, set_attribute, sub_element, xpath_attribute_filter,
)

if TYPE_CHECKING:
    from .scl_document import SclDocument


LLN0 = "LLN0"
MAX_LD_NAME_LENGTH = 33


# ============================================================================
# 基础枚举类型
# ============================================================================

class ServiceType(Enum):
    """ExtRef 服务类型"""
    POLL = "Poll"
    REPORT = "Report"
    GOOSE = "GOOSE"
    SMV = "SMV"

    @classmethod
    def from_string(cls, value: Optional[str], default: Optional["ServiceType"] = None) -> Optional["ServiceType"]:
        """按名称或值 (不区分大小写) 获取枚举, 无法识别时返回 default"""
        if not value:
            return default
        for member in cls:
            if value.lower() in (member.name.lower(), member.value.lower()):
                return member
        return default


class LDeviceStatus(Enum):
    """逻辑设备状态 (LN0.Mod.stVal)"""
    ON = "on"
    OFF = "off"

    @classmethod
    def from_string(cls, value: Optional[str]) -> Optional["LDeviceStatus"]:
        for member in cls:
            if member.value == value:
                return member
        return None


class ControlBlockType(Enum):
    """控制块类型"""
    REPORT = "ReportControl"
    GSE = "GSEControl"
    SMV = "SampledValueControl"
    LOG = "LogControl"

    @property
    def service_type(self) -> Optional[ServiceType]:
        """控制块对应的 ExtRef 服务类型"""
        return {
            ControlBlockType.REPORT: ServiceType.REPORT,
            ControlBlockType.GSE: ServiceType.GOOSE,
            ControlBlockType.SMV: ServiceType.SMV,
        }.get(self)


def _attribute(name: str, doc: str = "") -> property:
    """把 XML 属性映射为可读写的 Python 属性, 写入 None 即删除该属性"""
    def getter(self):
        return self.element.get(name)

    def setter(self, value):
        set_attribute(self.element, name, value)

    return property(getter, setter, doc=doc or name)


# ============================================================================
# 数据属性实例 (DAI)
# ============================================================================

@dataclass
class DataAttributeInstance:
    """
    数据属性实例 - DOI 下的 DAI 元素

    Attributes:
        element: DAI 元素
        parent: 所属 DOI
    """
    element: ET.Element
    parent: DataObjectInstance = field(repr=False, compare=False)

    @property
    def name(self) -> str:
        return self.element.get("name", "")

    @property
    def xpath(self) -> str:
        return f'{self.parent.xpath}/DAI[{xpath_attribute_filter("name", self.name)}]'

    @property
    def value(self) -> Optional[str]:
        """第一个 Val 的文本"""
        val_elem = find_element(self.element, "Val")
        if val_elem is None:
            return None
        return val_elem.text

    @property
    def is_updatable(self) -> bool:
        """valImport="false" 的 DAI 不允许修改"""
        return self.element.get("valImport", "").lower() != "false"

    def set_value(self, value: Optional[str]) -> bool:
        """
        设置属性值, 替换已有的全部 Val

        Args:
            value: 新值

        Returns:
            值是否发生变化
        """
        old_value = self.value
        for val_elem in findall_elements(self.element, "Val"):
            self.element.remove(val_elem)
        val_elem = sub_element(self.element, "Val")
        val_elem.text = value
        return old_value != value


# ============================================================================
# 数据对象实例 (DOI)
# ============================================================================

@dataclass
class DataObjectInstance:
    """数据对象实例 - 逻辑节点下的 DOI 元素"""
    element: ET.Element
    parent: LogicalNode = field(repr=False, compare=False)

    @property
    def name(self) -> str:
        return self.element.get("name", "")

    @property
    def xpath(self) -> str:
        return f'{self.parent.xpath}/DOI[{xpath_attribute_filter("name", self.name)}]'

    def find_dai(self, name: str) -> Optional[DataAttributeInstance]:
        """获取 DAI"""
        dai_elem = find_child_by_name(self.element, "DAI", name)
        if dai_elem is None:
            return None
        return DataAttributeInstance(dai_elem, self)


# ============================================================================
# ExtRef
# ============================================================================

BINDING_ATTRIBUTES = ("iedName", "ldInst", "prefix", "lnClass", "lnInst", "doName", "daName", "serviceType")
SOURCE_ATTRIBUTES = ("srcLDInst", "srcPrefix", "srcLNClass", "srcLNInst", "srcCBName")


@dataclass
class ExtRef:
    """
    外部信号引用 - Inputs 下的 ExtRef 元素

    信号描述: desc, pLN, pDO, pDA, intAddr, pServT
    绑定信息: iedName, ldInst, lnClass, lnInst, prefix, doName, daName, serviceType
    源控制块: srcLDInst, srcPrefix, srcLNClass, srcLNInst, srcCBName
    """
    element: ET.Element
    parent: LogicalNode = field(repr=False, compare=False)

    desc = _attribute("desc")
    p_ln = _attribute("pLN")
    p_do = _attribute("pDO")
    p_da = _attribute("pDA")
    int_addr = _attribute("intAddr")
    ied_name = _attribute("iedName")
    ld_inst = _attribute("ldInst")
    ln_inst = _attribute("lnInst")
    prefix = _attribute("prefix")
    do_name = _attribute("doName")
    da_name = _attribute("daName")
    src_ld_inst = _attribute("srcLDInst")
    src_prefix = _attribute("srcPrefix")
    src_ln_inst = _attribute("srcLNInst")
    src_cb_name = _attribute("srcCBName")

    @property
    def ln_class(self) -> Optional[str]:
        """lnClass 是列表类型, 取第一个值"""
        values = (self.element.get("lnClass") or "").split()
        return values[0] if values else None

    @ln_class.setter
    def ln_class(self, value: Optional[str]):
        set_attribute(self.element, "lnClass", value)

    @property
    def src_ln_class(self) -> Optional[str]:
        values = (self.element.get("srcLNClass") or "").split()
        return values[0] if values else None

    @src_ln_class.setter
    def src_ln_class(self, value: Optional[str]):
        set_attribute(self.element, "srcLNClass", value)

    @property
    def p_serv_t(self) -> Optional[ServiceType]:
        return ServiceType.from_string(self.element.get("pServT"))

    @property
    def service_type(self) -> Optional[ServiceType]:
        return ServiceType.from_string(self.element.get("serviceType"))

    @service_type.setter
    def service_type(self, value: Optional[ServiceType]):
        set_attribute(self.element, "serviceType", value.value if value else None)

    @property
    def xpath(self) -> str:
        return f'{self.parent.xpath}/Inputs/ExtRef[{xpath_attribute_filter("desc", self.desc)}]'

    @property
    def is_bound(self) -> bool:
        return not is_blank(self.ied_name)

    def clear_binding(self) -> None:
        """清除全部绑定与源控制块属性"""
        for name in BINDING_ATTRIBUTES + SOURCE_ATTRIBUTES:
            set_attribute(self.element, name, None)

    def set_binding(self, ied_name: str, ld_inst: str, ln_class: str,
                    ln_inst: Optional[str] = None, prefix: Optional[str] = None,
                    do_name: Optional[str] = None, da_name: Optional[str] = None,
                    service_type: Optional[ServiceType] = None) -> None:
        """一次写入全部绑定属性, 未给出的属性被删除"""
        self.ied_name = ied_name
        self.ld_inst = ld_inst
        self.ln_class = ln_class
        self.ln_inst = ln_inst or None
        self.prefix = prefix or None
        self.do_name = do_name or None
        self.da_name = da_name or None
        self.service_type = service_type

    def set_source(self, src_ld_inst: str, src_ln_class: str, src_cb_name: str,
                   src_ln_inst: Optional[str] = None, src_prefix: Optional[str] = None) -> None:
        """写入源控制块属性"""
        self.src_ld_inst = src_ld_inst
        self.src_ln_class = src_ln_class
        self.src_ln_inst = src_ln_inst or None
        self.src_prefix = src_prefix or None
        self.src_cb_name = src_cb_name

    def to_dict(self) -> Dict[str, str]:
        """转换为字典"""
        return dict(self.element.attrib)


# ============================================================================
# 控制块与数据集
# ============================================================================

@dataclass
class DataSet:
    """数据集 - FCDA 列表"""
    element: ET.Element
    parent: LogicalNode = field(repr=False, compare=False)

    @property
    def name(self) -> str:
        return self.element.get("name", "")

    def iter_fcdas(self) -> Iterator[Dict[str, str]]:
        """以字典形式遍历 FCDA"""
        for fcda_elem in findall_elements(self.element, "FCDA"):
            yield {
                'prefix': fcda_elem.get('prefix', ''),
                'ldInst': fcda_elem.get('ldInst', ''),
                'lnClass': fcda_elem.get('lnClass', ''),
                'lnInst': fcda_elem.get('lnInst', ''),
                'doName': fcda_elem.get('doName', ''),
                'daName': fcda_elem.get('daName', ''),
                'fc': fcda_elem.get('fc', ''),
            }


@dataclass
class ControlBlock:
    """控制块 - ReportControl / GSEControl / SampledValueControl / LogControl"""
    element: ET.Element
    parent: LogicalNode = field(repr=False, compare=False)

    @property
    def name(self) -> str:
        return self.element.get("name", "")

    @property
    def cb_type(self) -> ControlBlockType:
        return ControlBlockType(local_name(self.element.tag))

    @property
    def data_set_name(self) -> Optional[str]:
        return self.element.get("datSet")

    @property
    def data_set(self) -> Optional[DataSet]:
        """控制块引用的数据集"""
        if is_blank(self.data_set_name):
            return None
        return self.parent.find_data_set(self.data_set_name)

    @property
    def xpath(self) -> str:
        return f'{self.parent.xpath}/{self.cb_type.value}[{xpath_attribute_filter("name", self.name)}]'


# ============================================================================
# 逻辑节点 (LN0 / LN)
# ============================================================================

@dataclass
class LogicalNode:
    """
    逻辑节点 - LN0 与 LN 共用同一个访问器, 通过 is_ln0 区分

    Attributes:
        element: LN0 或 LN 元素
        parent: 所属逻辑设备
    """
    element: ET.Element
    parent: LogicalDevice = field(repr=False, compare=False)

    @property
    def is_ln0(self) -> bool:
        return local_name(self.element.tag) == "LN0"

    @property
    def ln_class(self) -> str:
        if self.is_ln0:
            return LLN0
        return self.element.get("lnClass", "")

    @property
    def inst(self) -> str:
        if self.is_ln0:
            return ""
        return self.element.get("inst", "")

    @property
    def prefix(self) -> Optional[str]:
        if self.is_ln0:
            return None
        return self.element.get("prefix")

    @property
    def ln_type(self) -> Optional[str]:
        return self.element.get("lnType")

    @property
    def name(self) -> str:
        """节点名称, 如 BRBDR1"""
        return f"{self.prefix or ''}{self.ln_class}{self.inst}"

    @property
    def xpath(self) -> str:
        if self.is_ln0:
            return f"{self.parent.xpath}/LN0"
        filters = " and ".join((
            xpath_attribute_filter("lnClass", self.ln_class),
            xpath_attribute_filter("inst", self.inst),
            xpath_attribute_filter("prefix", self.prefix),
        ))
        return f"{self.parent.xpath}/LN[{filters}]"

    # ------------------------------------------------------------------
    # Inputs / ExtRef
    # ------------------------------------------------------------------

    @property
    def inputs_element(self) -> Optional[ET.Element]:
        return find_element(self.element, "Inputs")

    def iter_ext_refs(self) -> Iterator[ExtRef]:
        """遍历 Inputs 下的全部 ExtRef"""
        inputs = self.inputs_element
        if inputs is None:
            return
        for ext_ref_elem in findall_elements(inputs, "ExtRef"):
            yield ExtRef(ext_ref_elem, self)

    @property
    def ext_refs(self) -> List[ExtRef]:
        return list(self.iter_ext_refs())

    @property
    def has_inputs(self) -> bool:
        """是否存在至少一个 ExtRef"""
        return any(True for _ in self.iter_ext_refs())

    @property
    def compas_flows(self) -> List[CompasFlow]:
        """Inputs 下的 compas:Flow 私有元素"""
        inputs = self.inputs_element
        if inputs is None:
            return []
        return [CompasFlow(elem) for elem in extract_compas_privates(inputs, PrivateType.COMPAS_FLOW)]

    # ------------------------------------------------------------------
    # DOI / DAI
    # ------------------------------------------------------------------

    def find_doi(self, name: str) -> Optional[DataObjectInstance]:
        """获取 DOI"""
        doi_elem = find_child_by_name(self.element, "DOI", name)
        if doi_elem is None:
            return None
        return DataObjectInstance(doi_elem, self)

    def get_dai_value(self, do_name: str, da_name: str) -> Optional[str]:
        """获取 DOI/DAI 的当前值"""
        doi = self.find_doi(do_name)
        if doi is None:
            return None
        dai = doi.find_dai(da_name)
        return dai.value if dai else None

    def update_dai(self, do_name: str, da_name: str, value: Optional[str]) -> bool:
        """
        更新 DOI/DAI 的值

        Args:
            do_name: DOI 名称
            da_name: DAI 名称
            value: 新值

        Returns:
            值是否发生变化

        Raises:
            StructureLookupError: DOI 或 DAI 不存在
            ScdException: DAI 不允许修改
        """
        doi = self.find_doi(do_name)
        if doi is None:
            raise StructureLookupError(f"The DOI {do_name} does not exist in LN {self.name}")
        dai = doi.find_dai(da_name)
        if dai is None:
            raise StructureLookupError(f"The DAI {do_name}.{da_name} does not exist in LN {self.name}")
        if not dai.is_updatable:
            raise ScdException(f"The DAI {do_name}.{da_name} cannot be updated (valImport is false)")
        changed = dai.set_value(value)
        if changed:
            logger.debug(f"Set {self.name}.{do_name}.{da_name} = {value}")
        return changed

    # ------------------------------------------------------------------
    # 控制块 / 数据集
    # ------------------------------------------------------------------

    def iter_control_blocks(self) -> Iterator[ControlBlock]:
        for cb_type in ControlBlockType:
            for cb_elem in findall_elements(self.element, cb_type.value):
                yield ControlBlock(cb_elem, self)

    def find_control_block(self, name: str) -> Optional[ControlBlock]:
        """按名称获取控制块"""
        for control_block in self.iter_control_blocks():
            if control_block.name == name:
                return control_block
        return None

    def find_data_set(self, name: str) -> Optional[DataSet]:
        ds_elem = find_child_by_name(self.element, "DataSet", name)
        if ds_elem is None:
            return None
        return DataSet(ds_elem, self)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return {
            "name": self.name,
            "class": self.ln_class,
            "inst": self.inst,
            "prefix": self.prefix,
            "lnType": self.ln_type,
            "ext_refs": [ext_ref.to_dict() for ext_ref in self.iter_ext_refs()],
        }


# ============================================================================
# 逻辑设备 (LDevice)
# ============================================================================

@dataclass
class LogicalDevice:
    """
    逻辑设备 - 逻辑节点的容器

    Attributes:
        element: LDevice 元素
        parent: 所属 IED
    """
    element: ET.Element
    parent: IED = field(repr=False, compare=False)

    @property
    def inst(self) -> str:
        return self.element.get("inst", "")

    @property
    def ied(self) -> IED:
        return self.parent

    @property
    def xpath(self) -> str:
        return f'{self.parent.xpath}/AccessPoint/Server/LDevice[{xpath_attribute_filter("inst", self.inst)}]'

    @property
    def ln0(self) -> Optional[LogicalNode]:
        ln0_elem = find_element(self.element, "LN0")
        if ln0_elem is None:
            return None
        return LogicalNode(ln0_elem, self)

    def iter_logical_nodes(self, include_ln0: bool = True) -> Iterator[LogicalNode]:
        """遍历逻辑节点, 默认 LN0 在前"""
        if include_ln0:
            ln0 = self.ln0
            if ln0 is not None:
                yield ln0
        for ln_elem in findall_elements(self.element, "LN"):
            yield LogicalNode(ln_elem, self)

    def find_logical_node(self, ln_class: str, inst: Optional[str] = None,
                          prefix: Optional[str] = None) -> Optional[LogicalNode]:
        """
        按 (lnClass, inst, prefix) 查找逻辑节点, 空白 prefix 与缺省 prefix 视为相同

        Args:
            ln_class: 逻辑节点类, LLN0 表示 LN0
            inst: 实例号
            prefix: 前缀

        Returns:
            逻辑节点或 None
        """
        if ln_class == LLN0:
            return self.ln0
        for ln in self.iter_logical_nodes(include_ln0=False):
            if (ln.ln_class == ln_class
                    and equals_or_both_blank(ln.inst, inst)
                    and equals_or_both_blank(ln.prefix, prefix)):
                return ln
        return None

    def get_logical_node(self, ln_class: str, inst: Optional[str] = None,
                         prefix: Optional[str] = None) -> LogicalNode:
        """同 find_logical_node, 找不到时抛出 StructureLookupError"""
        ln = self.find_logical_node(ln_class, inst, prefix)
        if ln is None:
            raise StructureLookupError(
                f"LDevice [{self.inst}] has no LN [{ln_class},{inst},{prefix}]"
            )
        return ln

    @property
    def status(self) -> Optional[str]:
        """LN0.Mod.stVal 的值, 未定义时为 None"""
        ln0 = self.ln0
        if ln0 is None:
            return None
        return ln0.get_dai_value("Mod", "stVal")

    @property
    def is_active(self) -> bool:
        return LDeviceStatus.from_string(self.status) == LDeviceStatus.ON

    @property
    def ld_name(self) -> Optional[str]:
        return self.element.get("ldName")

    def update_ld_name(self) -> str:
        """
        ldName 设为 IED 名称 + inst

        Raises:
            ScdException: 名称超过 33 个字符
        """
        ld_name = f"{self.parent.name}{self.inst}"
        if len(ld_name) > MAX_LD_NAME_LENGTH:
            raise ScdException(
                f"{ld_name}({self.parent.name}+{self.inst}) has more than {MAX_LD_NAME_LENGTH} characters"
            )
        self.element.set("ldName", ld_name)
        return ld_name

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return {
            "inst": self.inst,
            "status": self.status,
            "logical_nodes": [ln.to_dict() for ln in self.iter_logical_nodes()],
        }


# ============================================================================
# IED
# ============================================================================

@dataclass
class IED:
    """
    智能电子设备

    Attributes:
        element: IED 元素
        parent: 所属 SCL 文档
    """
    element: ET.Element
    parent: SclDocument = field(repr=False, compare=False)

    @property
    def name(self) -> str:
        return self.element.get("name", "")

    @property
    def xpath(self) -> str:
        return f'/SCL/IED[{xpath_attribute_filter("name", self.element.get("name"))}]'

    @property
    def icd_header(self) -> Optional[CompasICDHeader]:
        """compas:ICDHeader, 不存在时为 None"""
        elem = extract_compas_private(self.element, PrivateType.COMPAS_ICDHEADER)
        return CompasICDHeader(elem) if elem is not None else None

    @property
    def compas_bay(self) -> Optional[CompasBay]:
        """compas:Bay, 不存在时为 None"""
        elem = extract_compas_private(self.element, PrivateType.COMPAS_BAY)
        return CompasBay(elem) if elem is not None else None

    def iter_logical_devices(self) -> Iterator[LogicalDevice]:
        """遍历全部 AccessPoint/Server 下的逻辑设备"""
        for ap_elem in findall_elements(self.element, "AccessPoint"):
            server_elem = find_element(ap_elem, "Server")
            if server_elem is None:
                continue
            for ld_elem in findall_elements(server_elem, "LDevice"):
                yield LogicalDevice(ld_elem, self)

    def find_logical_device(self, inst: str) -> Optional[LogicalDevice]:
        """按 inst 查找逻辑设备"""
        for ld in self.iter_logical_devices():
            if ld.inst == inst:
                return ld
        return None

    def get_logical_device(self, inst: str) -> LogicalDevice:
        """按 inst 获取逻辑设备, 找不到时抛出 StructureLookupError"""
        ld = self.find_logical_device(inst)
        if ld is None:
            raise StructureLookupError(f"LDevice.inst '{inst}' not found in IED '{self.name}'")
        return ld

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        header = self.icd_header
        return {
            "name": self.name,
            "icd_header": header.to_dict() if header else None,
            "logical_devices": [ld.to_dict() for ld in self.iter_logical_devices()],
        }
