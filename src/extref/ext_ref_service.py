"""
ExtRef Service
==============

ExtRef 绑定相关操作的统一入口:
- 批量操作 (iedName 自动绑定, LDEPF 自动绑定) 返回诊断列表
- 单项操作 (更新绑定, 更新源控制块) 在写入之前完成全部检查, 失败时抛出异常
"""

from typing import Iterable, List, Optional

from loguru import logger

from scl.data_model import IED, LLN0, ExtRef, LogicalDevice, LogicalNode, ServiceType
from scl.exceptions import (
    BindingInvariantError, PayloadValidationError, ResolutionError, StructureLookupError,
)
from scl.scl_document import SclDocument
from scl.utils import equals_or_both_blank, is_blank

from .binder_resolver import get_ext_ref_binders, get_ied_ext_ref_binders
from .dto import BindingCandidate, ExtRefBindingInfo, ExtRefInfo, ExtRefSignalInfo, ExtRefSourceInfo
from .ied_name_binder import update_all_ext_ref_ied_names
from .ied_validator import validate_ieds
from .ldepf import manage_binding_for_ldepf
from .ldepf_settings import LDEPFSettings
from .report import SclReportItem

INVALID_BINDING_INFO = "Invalid or missing attributes in ExtRef binding info"
INVALID_SIGNAL_INFO = "Invalid or missing attributes in ExtRef signal info"
INVALID_SOURCE_INFO = "Invalid or missing attributes in ExtRef source info"


# ============================================================================
# 控制块去重
# ============================================================================

def _src_ln_class_or_default(ext_ref: ExtRef) -> str:
    src_ln_class = ext_ref.src_ln_class
    return LLN0 if is_blank(src_ln_class) else src_ln_class


def is_ext_ref_fed_by_same_control_block(first: ExtRef, second: ExtRef) -> bool:
    """两个 ExtRef 由同一个控制块提供"""
    return (
        equals_or_both_blank(first.ied_name, second.ied_name)
        and equals_or_both_blank(first.src_ld_inst, second.src_ld_inst)
        and _src_ln_class_or_default(first) == _src_ln_class_or_default(second)
        and equals_or_both_blank(first.src_ln_inst, second.src_ln_inst)
        and equals_or_both_blank(first.src_prefix, second.src_prefix)
        and equals_or_both_blank(first.src_cb_name, second.src_cb_name)
        and first.service_type == second.service_type
    )


def filter_duplicated_ext_refs(ext_refs: Iterable[ExtRef]) -> List[ExtRef]:
    """
    去除由同一控制块提供的重复 ExtRef, 保留第一次出现的项并保持原有顺序

    Args:
        ext_refs: ExtRef 序列

    Returns:
        去重后的列表
    """
    filtered: List[ExtRef] = []
    for ext_ref in ext_refs:
        if not any(is_ext_ref_fed_by_same_control_block(ext_ref, kept) for kept in filtered):
            filtered.append(ext_ref)
    return filtered


# ============================================================================
# 服务
# ============================================================================

class ExtRefService:
    """ExtRef 绑定服务"""

    # ------------------------------------------------------------------
    # 批量操作
    # ------------------------------------------------------------------

    def validate_ieds(self, document: SclDocument) -> List[SclReportItem]:
        return validate_ieds(document)

    def update_all_ext_ref_ied_names(self, document: SclDocument) -> List[SclReportItem]:
        return update_all_ext_ref_ied_names(document)

    def manage_binding_for_ldepf(self, document: SclDocument,
                                 settings: LDEPFSettings) -> List[SclReportItem]:
        return manage_binding_for_ldepf(document, settings)

    @staticmethod
    def filter_duplicated_ext_refs(ext_refs: Iterable[ExtRef]) -> List[ExtRef]:
        return filter_duplicated_ext_refs(ext_refs)

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    def get_ext_ref_binders(self, document: SclDocument, ied_name: str, signal_info: ExtRefSignalInfo,
                            ld_inst: Optional[str] = None) -> List[BindingCandidate]:
        """
        列出 IED (或其某个逻辑设备) 中可以绑定该信号的节点

        Raises:
            PayloadValidationError: 信号描述不合法
            StructureLookupError: IED 或逻辑设备不存在
            ResolutionError: 数据路径无法解析
        """
        if signal_info is None or not signal_info.is_valid():
            raise PayloadValidationError(INVALID_SIGNAL_INFO)
        ied = document.get_ied_by_name(ied_name)
        if ld_inst is None:
            return get_ied_ext_ref_binders(ied, signal_info)
        return get_ext_ref_binders(ied.get_logical_device(ld_inst), signal_info)

    # ------------------------------------------------------------------
    # 单项操作
    # ------------------------------------------------------------------

    def update_ext_ref_binders(self, document: SclDocument, ext_ref_info: ExtRefInfo) -> ExtRef:
        """
        按绑定信息更新 ExtRef 的全部绑定属性

        Args:
            document: SCL 文档
            ext_ref_info: 持有节点位置 + 信号信息 + 绑定信息

        Returns:
            更新后的 ExtRef

        Raises:
            PayloadValidationError: 信号或绑定信息缺失或不合法
            StructureLookupError: 持有节点、ExtRef 或绑定目标不存在
            ResolutionError: 绑定的 doName / daName 在目标节点类型中不存在
        """
        signal_info = ext_ref_info.signal_info
        binding_info = ext_ref_info.binding_info
        if signal_info is None or binding_info is None:
            raise PayloadValidationError("ExtRef Signal and/or Binding information are missing")
        if not signal_info.is_valid():
            raise PayloadValidationError(INVALID_SIGNAL_INFO)
        if not binding_info.is_valid():
            raise PayloadValidationError(INVALID_BINDING_INFO)

        holder = self._get_holder(document, ext_ref_info)
        ext_ref = self._get_ext_ref(holder, signal_info)
        target = self._get_binding_target(document, binding_info)
        if not is_blank(binding_info.do_name):
            resolved = document.data_type_templates.resolve_data_path(
                target.ln_type, binding_info.do_name, binding_info.da_name
            )
            if resolved is None:
                raise ResolutionError(
                    f"Unknown DO ({binding_info.do_name}) in LNodeType ({target.ln_type}) "
                    f"of LN {target.name}"
                )

        ext_ref.set_binding(
            binding_info.ied_name,
            binding_info.ld_inst,
            binding_info.ln_class,
            ln_inst=binding_info.ln_inst if binding_info.ln_class != LLN0 else None,
            prefix=binding_info.prefix,
            do_name=binding_info.do_name,
            da_name=binding_info.da_name,
            service_type=binding_info.service_type,
        )
        logger.debug(f"ExtRef {ext_ref.desc} of {holder.xpath} bound to {binding_info.ied_name}")
        return ext_ref

    def update_ext_ref_source(self, document: SclDocument, ext_ref_info: ExtRefInfo) -> ExtRef:
        """
        为已绑定的 ExtRef 写入源控制块

        Args:
            document: SCL 文档
            ext_ref_info: 持有节点位置 + 信号 / 绑定 / 源信息

        Returns:
            更新后的 ExtRef

        Raises:
            PayloadValidationError: 任一负载缺失或不合法
            BindingInvariantError: 自绑定、Poll 服务类型, 或 ExtRef 未绑定到该绑定信息
            StructureLookupError: 持有节点、ExtRef 或源控制块不存在
        """
        signal_info = ext_ref_info.signal_info
        if signal_info is None or not signal_info.is_valid():
            raise PayloadValidationError(INVALID_SIGNAL_INFO)
        binding_info = ext_ref_info.binding_info
        if binding_info is None or not binding_info.is_valid():
            raise PayloadValidationError(INVALID_BINDING_INFO)
        if (binding_info.ied_name == ext_ref_info.holder_ied_name
                or binding_info.service_type == ServiceType.POLL):
            raise BindingInvariantError("Internal binding can't have control block")
        source_info = ext_ref_info.source_info
        if source_info is None or not source_info.is_valid():
            raise PayloadValidationError(INVALID_SOURCE_INFO)

        holder = self._get_holder(document, ext_ref_info)
        ext_ref = self._get_ext_ref(holder, signal_info)
        if not binding_info.is_wrapped_in(ext_ref):
            raise BindingInvariantError(
                f"ExtRef {ext_ref.xpath} is not bound to {binding_info.ied_name}/{binding_info.ld_inst}"
            )
        self._check_control_block(document, ext_ref, source_info)

        ext_ref.set_source(
            source_info.src_ld_inst,
            source_info.src_ln_class,
            source_info.src_cb_name,
            src_ln_inst=source_info.src_ln_inst,
            src_prefix=source_info.src_prefix,
        )
        logger.debug(f"ExtRef {ext_ref.desc} source set to control block {source_info.src_cb_name}")
        return ext_ref

    # ------------------------------------------------------------------
    # 内部查找
    # ------------------------------------------------------------------

    @staticmethod
    def _get_holder(document: SclDocument, ext_ref_info: ExtRefInfo) -> LogicalNode:
        ied = document.get_ied_by_name(ext_ref_info.holder_ied_name)
        logical_device = ied.find_logical_device(ext_ref_info.holder_ld_inst)
        if logical_device is None:
            raise StructureLookupError(
                f"Unknown LDevice ({ext_ref_info.holder_ld_inst}) in IED ({ied.name})"
            )
        return logical_device.get_logical_node(
            ext_ref_info.holder_ln_class,
            ext_ref_info.holder_ln_inst,
            ext_ref_info.holder_ln_prefix,
        )

    @staticmethod
    def _get_ext_ref(holder: LogicalNode, signal_info: ExtRefSignalInfo) -> ExtRef:
        for ext_ref in holder.iter_ext_refs():
            if signal_info.matches(ext_ref):
                return ext_ref
        raise StructureLookupError(
            f"Unknown ExtRef [pDO({signal_info.p_do}), intAddr({signal_info.int_addr})] "
            f"in {holder.xpath}"
        )

    @staticmethod
    def _get_binding_target(document: SclDocument, binding_info: ExtRefBindingInfo) -> LogicalNode:
        ied: IED = document.get_ied_by_name(binding_info.ied_name)
        logical_device: LogicalDevice = ied.get_logical_device(binding_info.ld_inst)
        return logical_device.get_logical_node(
            binding_info.ln_class, binding_info.ln_inst, binding_info.prefix
        )

    @staticmethod
    def _check_control_block(document: SclDocument, ext_ref: ExtRef,
                             source_info: ExtRefSourceInfo) -> None:
        source_ied = document.get_ied_by_name(ext_ref.ied_name)
        source_ln = source_ied.get_logical_device(source_info.src_ld_inst).get_logical_node(
            source_info.src_ln_class, source_info.src_ln_inst, source_info.src_prefix
        )
        control_block = source_ln.find_control_block(source_info.src_cb_name)
        if control_block is None:
            raise StructureLookupError(
                f"Unknown control block {source_info.src_cb_name} in {source_ln.xpath}"
            )

        service_type = ext_ref.service_type
        if service_type is not None and control_block.cb_type.service_type != service_type:
            raise BindingInvariantError(
                f"Control block {control_block.name} ({control_block.cb_type.value}) "
                f"does not provide {service_type.value} service"
            )

        data_set = control_block.data_set
        if data_set is None:
            raise StructureLookupError(f"Control block {control_block.name} has no DataSet")
        if not any(_fcda_matches(fcda, ext_ref) for fcda in data_set.iter_fcdas()):
            raise BindingInvariantError(
                f"DataSet {data_set.name} of control block {control_block.name} "
                f"does not contain the signal bound by ExtRef {ext_ref.desc}"
            )


def _fcda_matches(fcda: dict, ext_ref: ExtRef) -> bool:
    """FCDA 指向 ExtRef 绑定的节点, doName / daName 在 ExtRef 上给出时也需一致"""
    if not (
        fcda['ldInst'] == ext_ref.ld_inst
        and fcda['lnClass'] == ext_ref.ln_class
        and equals_or_both_blank(fcda['lnInst'], ext_ref.ln_inst)
        and equals_or_both_blank(fcda['prefix'], ext_ref.prefix)
    ):
        return False
    if not is_blank(ext_ref.do_name) and fcda['doName'] != ext_ref.do_name:
        return False
    if not is_blank(ext_ref.da_name) and fcda['daName'] != ext_ref.da_name:
        return False
    return True
