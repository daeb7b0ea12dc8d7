"""
LDEPF Auto-Wiring
=================

LDEPF (扰动录波) 逻辑设备的 ExtRef 根据参数表自动绑定到同一间隔内的
唯一源 IED, 并把通道信息写入对应的 RBDR / RADR 通道逻辑节点:

    ChNum1.dU         通道短标签
    LevMod.setVal     触发电平 (带前缀的节点取 q 版本)
    Mod.stVal         "on"
    SrcRef.setSrcRef  源信号引用
"""

from typing import Iterator, List, NamedTuple, Optional

from loguru import logger

from scl.data_model import IED, ExtRef, LDeviceStatus, LogicalDevice, LogicalNode
from scl.exceptions import ScdException
from scl.privates import CompasBay
from scl.scl_document import SclDocument
from scl.utils import trim_to_empty

from .dto import LN_PREFIX_A, LN_PREFIX_B, LDEPFSettingData
from .ldepf_settings import IED_TEST_NAME, LDEPFSettings
from .report import SclReportItem

LDEVICE_LDEPF = "LDEPF"
Q_DA_NAME = "q"

CHNUM1_DO_NAME, DU_DA_NAME = "ChNum1", "dU"
LEVMOD_DO_NAME, SETVAL_DA_NAME = "LevMod", "setVal"
MOD_DO_NAME, STVAL_DA_NAME = "Mod", "stVal"
SRCREF_DO_NAME, SETSRCREF_DA_NAME = "SrcRef", "setSrcRef"

CHANNEL_DATA = (
    (CHNUM1_DO_NAME, DU_DA_NAME),
    (LEVMOD_DO_NAME, SETVAL_DA_NAME),
    (MOD_DO_NAME, STVAL_DA_NAME),
    (SRCREF_DO_NAME, SETSRCREF_DA_NAME),
)


class ExtRefBayReference(NamedTuple):
    """LDEPF ExtRef 及其所属 IED 与间隔"""
    ied_name: str
    ext_ref: ExtRef
    compas_bay: CompasBay


def manage_binding_for_ldepf(document: SclDocument, settings: LDEPFSettings) -> List[SclReportItem]:
    """
    按参数表绑定全部 LDEPF ExtRef 并更新通道逻辑节点

    Args:
        document: SCL 文档
        settings: LDEPF 参数来源

    Returns:
        诊断列表, 按处理顺序
    """
    items: List[SclReportItem] = []
    bound = 0
    for ied in document.iter_ieds():
        if ied.name == IED_TEST_NAME:
            continue
        logical_device = ied.find_logical_device(LDEVICE_LDEPF)
        if logical_device is None:
            continue
        try:
            compas_bay = ied.compas_bay
        except ScdException as e:
            item = SclReportItem.warning(ied.xpath, str(e))
            logger.warning(str(item))
            items.append(item)
            continue
        for reference in iter_active_ldepf_ext_refs(ied, logical_device, compas_bay):
            setting = settings.get_setting_matching_ext_ref(reference.ext_ref)
            if setting is None:
                continue
            sources = settings.get_ied_sources(document, reference.compas_bay, setting)
            if len(sources) == 1:
                if _bind_ext_ref(logical_device, reference.ext_ref, sources[0], setting, items):
                    bound += 1
            elif len(sources) > 1:
                item = SclReportItem.warning(
                    None,
                    f"There is more than one IED source to bind the signal "
                    f"/IED@name={reference.ied_name}/LDevice@inst={LDEVICE_LDEPF}/LN0"
                    f"/ExtRef@desc={reference.ext_ref.desc}",
                )
                logger.warning(str(item))
                items.append(item)

    logger.info(f"LDEPF binding done: {bound} ExtRef(s) bound, {len(items)} diagnostic(s)")
    return items


def iter_active_ldepf_ext_refs(ied: IED, logical_device: LogicalDevice,
                               compas_bay: Optional[CompasBay]) -> Iterator[ExtRefBayReference]:
    """LDEPF 处于 on 且 IED 带有 compas:Bay 时, 遍历其 LN0 下的 ExtRef"""
    if compas_bay is None:
        logger.debug(f"IED {ied.name} has no Private COMPAS-Bay, LDEPF ExtRefs skipped")
        return
    if LDeviceStatus.from_string(logical_device.status) != LDeviceStatus.ON:
        logger.debug(f"LDEPF of IED {ied.name} is not on, ExtRefs skipped")
        return
    ln0 = logical_device.ln0
    if ln0 is None:
        return
    for ext_ref in ln0.iter_ext_refs():
        yield ExtRefBayReference(ied.name, ext_ref, compas_bay)


def _bind_ext_ref(logical_device: LogicalDevice, ext_ref: ExtRef, source: IED,
                  setting: LDEPFSettingData, items: List[SclReportItem]) -> bool:
    channel = setting.channel
    if channel is None:
        logger.debug(
            f"LDEPF setting {setting.desc} must have exactly one channel number, ExtRef not bound"
        )
        return False

    ext_ref.ied_name = source.name
    ext_ref.ld_inst = setting.ld_inst
    ext_ref.ln_class = setting.ln_class
    ext_ref.ln_inst = setting.ln_inst
    if setting.ln_prefix is not None:
        ext_ref.prefix = setting.ln_prefix
    ext_ref.do_name = setting.bound_do_name
    logger.debug(f"LDEPF ExtRef {ext_ref.desc} bound to {source.name}/{setting.ld_inst}")

    ln_class, channel_num, prefix = channel
    for ln_prefix in (None, prefix):
        ln = logical_device.find_logical_node(ln_class, str(channel_num), ln_prefix)
        if ln is None:
            continue
        for do_name, da_name in CHANNEL_DATA:
            item = _update_channel_value(ln, do_name, da_name, ext_ref, setting)
            if item is not None:
                logger.warning(str(item))
                items.append(item)
    return True


def _is_prefixed_channel(ln: LogicalNode) -> bool:
    return ln.prefix in (LN_PREFIX_A, LN_PREFIX_B)


def _channel_value(ln: LogicalNode, da_name: str, ext_ref: ExtRef,
                   setting: LDEPFSettingData) -> Optional[str]:
    if da_name == DU_DA_NAME:
        return setting.channel_short_label
    if da_name == SETVAL_DA_NAME:
        return setting.channel_lev_mod_q if _is_prefixed_channel(ln) else setting.channel_lev_mod
    if da_name == STVAL_DA_NAME:
        return LDeviceStatus.ON.value
    if da_name == SETSRCREF_DA_NAME:
        return compute_src_ref(ext_ref, Q_DA_NAME if _is_prefixed_channel(ln) else setting.da_name)
    return None


def compute_src_ref(ext_ref: ExtRef, da_name: Optional[str]) -> str:
    """源信号引用: iedName + ldInst/prefix + lnClass + lnInst.doName.daName"""
    return (
        f"{trim_to_empty(ext_ref.ied_name)}{trim_to_empty(ext_ref.ld_inst)}/"
        f"{trim_to_empty(ext_ref.prefix)}{trim_to_empty(ext_ref.ln_class)}{trim_to_empty(ext_ref.ln_inst)}"
        f".{trim_to_empty(ext_ref.do_name)}.{trim_to_empty(da_name)}"
    )


def _update_channel_value(ln: LogicalNode, do_name: str, da_name: str, ext_ref: ExtRef,
                          setting: LDEPFSettingData) -> Optional[SclReportItem]:
    value = _channel_value(ln, da_name, ext_ref, setting)
    try:
        ln.update_dai(do_name, da_name, value)
    except ScdException as e:
        return SclReportItem.warning(ln.xpath, str(e))
    return None
