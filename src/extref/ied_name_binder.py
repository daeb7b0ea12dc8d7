"""
ExtRef iedName 自动绑定

ICD 阶段 ExtRef@iedName 中保存的是源 IED 的 ICDSystemVersionUUID,
集成到 SCD 后按 ICDSystemVersionUUID -> IED 映射替换为实际的 IED 名称,
并同步 compas:Flow@ExtRefiedName。
"""

from typing import Dict, List, Optional

from loguru import logger

from scl.data_model import IED, ExtRef, LDeviceStatus, LogicalDevice, LogicalNode
from scl.privates import CompasFlow, FlowStatus
from scl.scl_document import SclDocument
from scl.utils import is_blank

from .ied_validator import validate_ieds
from .report import SclReportItem

LDEVICE_STATUS_UNDEFINED = "The LDevice status is undefined"
LDEVICE_STATUS_INVALID = 'The LDevice status is neither "on" nor "off"'


def update_all_ext_ref_ied_names(document: SclDocument) -> List[SclReportItem]:
    """
    把全部 ExtRef@iedName 从 ICDSystemVersionUUID 替换为 IED 名称

    身份检查失败时直接返回其诊断, 不修改文档。

    Args:
        document: SCL 文档

    Returns:
        诊断列表, 按处理顺序
    """
    items = validate_ieds(document)
    if items:
        return items

    ieds_by_uuid: Dict[str, IED] = {
        ied.icd_header.icd_system_version_uuid: ied for ied in document.iter_ieds()
    }

    for ied in document.iter_ieds():
        for logical_device in ied.iter_logical_devices():
            ln0 = logical_device.ln0
            if ln0 is None or not ln0.has_inputs:
                continue
            items.extend(_update_ln0_ext_refs(logical_device, ln0, ieds_by_uuid))

    logger.info(f"ExtRef iedName binding done with {len(items)} diagnostic(s)")
    return items


def _update_ln0_ext_refs(logical_device: LogicalDevice, ln0: LogicalNode,
                         ieds_by_uuid: Dict[str, IED]) -> List[SclReportItem]:
    status = logical_device.status
    if status is None:
        return [SclReportItem.fatal(logical_device.xpath, LDEVICE_STATUS_UNDEFINED)]

    ld_status = LDeviceStatus.from_string(status)
    if ld_status is None:
        return [SclReportItem.fatal(logical_device.xpath, LDEVICE_STATUS_INVALID)]

    if ld_status == LDeviceStatus.OFF:
        for ext_ref in ln0.iter_ext_refs():
            ext_ref.clear_binding()
        logger.debug(f"LDevice {logical_device.ied.name}/{logical_device.inst} is off, ExtRef bindings cleared")
        return []

    items = []
    flows = ln0.compas_flows
    for ext_ref in ln0.iter_ext_refs():
        if is_blank(ext_ref.ied_name) or is_blank(ext_ref.desc):
            continue
        item = _update_ext_ref_ied_name(ext_ref, flows, ieds_by_uuid)
        if item is not None:
            logger.warning(str(item))
            items.append(item)
    return items


def _update_ext_ref_ied_name(ext_ref: ExtRef, flows: List[CompasFlow],
                             ieds_by_uuid: Dict[str, IED]) -> Optional[SclReportItem]:
    matching_flows = [flow for flow in flows if flow.matches(ext_ref)]
    if not matching_flows:
        return SclReportItem.fatal(ext_ref.xpath, "The signal ExtRef has no matching compas:Flow Private")
    if len(matching_flows) > 1:
        return SclReportItem.fatal(ext_ref.xpath, "The signal ExtRef has more than one matching compas:Flow Private")
    flow = matching_flows[0]

    if flow.flow_status == FlowStatus.INACTIVE:
        _clear_bindings(ext_ref, flow)
        return None

    source_ied = ieds_by_uuid.get(ext_ref.ied_name)
    if source_ied is None:
        _clear_bindings(ext_ref, flow)
        return SclReportItem.warning(
            ext_ref.xpath,
            "The signal ExtRef iedName does not match any IED/Private/compas:ICDHeader@ICDSystemVersionUUID",
        )

    source_ld = source_ied.find_logical_device(ext_ref.ld_inst) if not is_blank(ext_ref.ld_inst) else None
    if source_ld is None:
        _clear_bindings(ext_ref, flow)
        return SclReportItem.warning(
            ext_ref.xpath,
            f"The signal ExtRef ExtRefldinst does not match any LDevice with same inst "
            f"in source IED {source_ied.xpath}",
        )

    source_status = source_ld.status
    if source_status is None:
        _clear_bindings(ext_ref, flow)
        return SclReportItem.warning(
            ext_ref.xpath,
            f"The signal ExtRef source LDevice {source_ld.xpath} status is undefined",
        )
    source_ld_status = LDeviceStatus.from_string(source_status)
    if source_ld_status is None:
        _clear_bindings(ext_ref, flow)
        return SclReportItem.warning(
            ext_ref.xpath,
            f'The signal ExtRef source LDevice {source_ld.xpath} status is neither "on" nor "off"',
        )
    if source_ld_status == LDeviceStatus.OFF:
        _clear_bindings(ext_ref, flow)
        return SclReportItem.warning(
            ext_ref.xpath,
            f"The signal ExtRef source LDevice {source_ld.xpath} status is off",
        )

    logger.debug(f"ExtRef {ext_ref.desc}: iedName {ext_ref.ied_name} -> {source_ied.name}")
    ext_ref.ied_name = source_ied.name
    flow.ext_ref_ied_name = source_ied.name
    return None


def _clear_bindings(ext_ref: ExtRef, flow: CompasFlow) -> None:
    ext_ref.clear_binding()
    flow.clear_binding()
