"""
绑定候选项查找

对给定的信号描述 (pLN / pDO / pDA), 在逻辑设备的各逻辑节点中
查找其数据类型能够提供该数据路径的节点。
"""

from typing import List

from loguru import logger

from scl.data_model import IED, LogicalDevice, LogicalNode
from scl.data_type_templates import DataTypeTemplates
from scl.utils import is_blank

from .dto import BindingCandidate, ExtRefSignalInfo


def _resolve_candidate(templates: DataTypeTemplates, ln: LogicalNode,
                       signal_info: ExtRefSignalInfo):
    resolved = templates.resolve_data_path(ln.ln_type, signal_info.p_do, signal_info.p_da)
    if resolved is None:
        return None
    ld = ln.parent
    return BindingCandidate(
        ied_name=ld.ied.name,
        ld_inst=ld.inst,
        ln_class=ln.ln_class,
        ln_inst=ln.inst,
        prefix=ln.prefix,
        ln_type=ln.ln_type,
        do_name=resolved.do_name,
        da_name=resolved.da_name,
        fc=resolved.fc,
    )


def get_ext_ref_binders(logical_device: LogicalDevice,
                        signal_info: ExtRefSignalInfo) -> List[BindingCandidate]:
    """
    列出逻辑设备中可以绑定该信号的逻辑节点

    LN0 在前; signal_info.p_ln 非空时只考虑该类的节点。
    节点类型中没有声明 pDO 的第一段时该节点被跳过。

    Args:
        logical_device: 目标逻辑设备
        signal_info: 信号描述, pDO 必须给出

    Returns:
        绑定候选项列表

    Raises:
        ResolutionError: LNodeType 未知, 类型链断裂或路径格式错误
    """
    templates = logical_device.ied.parent.data_type_templates
    candidates = []
    for ln in logical_device.iter_logical_nodes():
        if not is_blank(signal_info.p_ln) and ln.ln_class != signal_info.p_ln:
            continue
        candidate = _resolve_candidate(templates, ln, signal_info)
        if candidate is not None:
            candidates.append(candidate)
    logger.debug(
        f"{len(candidates)} binding candidate(s) for {signal_info.p_do}.{signal_info.p_da or ''} "
        f"in {logical_device.ied.name}/{logical_device.inst}"
    )
    return candidates


def get_ied_ext_ref_binders(ied: IED, signal_info: ExtRefSignalInfo) -> List[BindingCandidate]:
    """IED 全部逻辑设备的绑定候选项"""
    candidates = []
    for logical_device in ied.iter_logical_devices():
        candidates.extend(get_ext_ref_binders(logical_device, signal_info))
    return candidates
