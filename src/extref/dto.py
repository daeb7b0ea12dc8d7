"""
ExtRef Data Transfer Objects
============================

单项操作的输入负载 (信号 / 绑定 / 源控制块信息), 绑定候选项,
以及 LDEPF 参数表的行。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from scl.data_model import LLN0, ExtRef, ServiceType
from scl.utils import equals_or_both_blank, is_blank


# ============================================================================
# ExtRef 负载
# ============================================================================

@dataclass
class ExtRefSignalInfo:
    """
    信号描述: 期望订阅的 DO/DA 路径

    Attributes:
        desc: ExtRef 描述
        p_ln: 逻辑节点类过滤条件
        p_do: DO 路径
        p_da: DA 路径
        int_addr: 内部地址
        p_serv_t: 期望的服务类型
    """
    desc: Optional[str] = None
    p_ln: Optional[str] = None
    p_do: Optional[str] = None
    p_da: Optional[str] = None
    int_addr: Optional[str] = None
    p_serv_t: Optional[ServiceType] = None

    @classmethod
    def from_ext_ref(cls, ext_ref: ExtRef) -> "ExtRefSignalInfo":
        return cls(
            desc=ext_ref.desc,
            p_ln=ext_ref.p_ln,
            p_do=ext_ref.p_do,
            p_da=ext_ref.p_da,
            int_addr=ext_ref.int_addr,
            p_serv_t=ext_ref.p_serv_t,
        )

    def is_valid(self) -> bool:
        return not is_blank(self.p_do)

    def matches(self, ext_ref: ExtRef) -> bool:
        """ExtRef 的信号描述与本对象一致"""
        return (
            equals_or_both_blank(self.desc, ext_ref.desc)
            and equals_or_both_blank(self.p_ln, ext_ref.p_ln)
            and equals_or_both_blank(self.p_do, ext_ref.p_do)
            and equals_or_both_blank(self.p_da, ext_ref.p_da)
            and equals_or_both_blank(self.int_addr, ext_ref.int_addr)
            and self.p_serv_t == ext_ref.p_serv_t
        )


@dataclass
class ExtRefBindingInfo:
    """绑定信息: 发布信号的 IED / LD / LN / DO / DA"""
    ied_name: Optional[str] = None
    ld_inst: Optional[str] = None
    ln_class: Optional[str] = None
    ln_inst: Optional[str] = None
    prefix: Optional[str] = None
    do_name: Optional[str] = None
    da_name: Optional[str] = None
    service_type: Optional[ServiceType] = None

    @classmethod
    def from_ext_ref(cls, ext_ref: ExtRef) -> "ExtRefBindingInfo":
        return cls(
            ied_name=ext_ref.ied_name,
            ld_inst=ext_ref.ld_inst,
            ln_class=ext_ref.ln_class,
            ln_inst=ext_ref.ln_inst,
            prefix=ext_ref.prefix,
            do_name=ext_ref.do_name,
            da_name=ext_ref.da_name,
            service_type=ext_ref.service_type,
        )

    def is_valid(self) -> bool:
        """IED、LD、LN 类必须给出; LN0 以外还需要 lnInst"""
        if is_blank(self.ied_name) or is_blank(self.ld_inst) or is_blank(self.ln_class):
            return False
        return self.ln_class == LLN0 or not is_blank(self.ln_inst)

    def is_wrapped_in(self, ext_ref: ExtRef) -> bool:
        """ExtRef 当前绑定的节点与本对象一致"""
        return (
            self.ied_name == ext_ref.ied_name
            and self.ld_inst == ext_ref.ld_inst
            and self.ln_class == ext_ref.ln_class
            and equals_or_both_blank(self.ln_inst, ext_ref.ln_inst)
            and equals_or_both_blank(self.prefix, ext_ref.prefix)
            and (self.service_type is None or self.service_type == ext_ref.service_type)
        )


@dataclass
class ExtRefSourceInfo:
    """源控制块信息"""
    src_ld_inst: Optional[str] = None
    src_prefix: Optional[str] = None
    src_ln_class: Optional[str] = None
    src_ln_inst: Optional[str] = None
    src_cb_name: Optional[str] = None

    def is_valid(self) -> bool:
        return not (
            is_blank(self.src_ld_inst)
            or is_blank(self.src_ln_class)
            or is_blank(self.src_cb_name)
        )


@dataclass
class ExtRefInfo:
    """
    单项操作的完整负载: 持有 ExtRef 的节点位置 + 信号/绑定/源信息

    Attributes:
        holder_ied_name: 持有 ExtRef 的 IED
        holder_ld_inst: 持有 ExtRef 的 LDevice
        holder_ln_class: 持有 ExtRef 的 LN 类 (LLN0 表示 LN0)
        holder_ln_inst: LN 实例号
        holder_ln_prefix: LN 前缀
    """
    holder_ied_name: str
    holder_ld_inst: str
    holder_ln_class: str = LLN0
    holder_ln_inst: Optional[str] = None
    holder_ln_prefix: Optional[str] = None
    signal_info: Optional[ExtRefSignalInfo] = None
    binding_info: Optional[ExtRefBindingInfo] = None
    source_info: Optional[ExtRefSourceInfo] = None


# ============================================================================
# 绑定候选项
# ============================================================================

@dataclass(frozen=True)
class BindingCandidate:
    """信号描述在某个逻辑节点上的一种可能绑定"""
    ied_name: str
    ld_inst: str
    ln_class: str
    ln_inst: str = ""
    prefix: Optional[str] = None
    ln_type: Optional[str] = None
    do_name: Optional[str] = None
    da_name: Optional[str] = None
    fc: Optional[str] = None

    def to_binding_info(self, service_type: Optional[ServiceType] = None) -> ExtRefBindingInfo:
        return ExtRefBindingInfo(
            ied_name=self.ied_name,
            ld_inst=self.ld_inst,
            ln_class=self.ln_class,
            ln_inst=self.ln_inst or None,
            prefix=self.prefix,
            do_name=self.do_name,
            da_name=self.da_name,
            service_type=service_type,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "iedName": self.ied_name,
            "ldInst": self.ld_inst,
            "prefix": self.prefix,
            "lnClass": self.ln_class,
            "lnInst": self.ln_inst,
            "lnType": self.ln_type,
            "doName": self.do_name,
            "daName": self.da_name,
            "fc": self.fc,
        }


# ============================================================================
# LDEPF 参数
# ============================================================================

LN_RBDR = "RBDR"
LN_RADR = "RADR"
LN_PREFIX_B = "B"
LN_PREFIX_A = "A"


def _optional_int(value: Any) -> Optional[int]:
    if value is None or (isinstance(value, str) and is_blank(value)):
        return None
    return int(value)


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


@dataclass
class LDEPFSettingData:
    """
    LDEPF 参数表的一行

    desc / p_ln / p_do / p_da 用于匹配 ExtRef;
    ied_type / ied_redundancy / ied_instance 用于匹配源 IED 的 ICDHeader;
    ld_inst ... da_name 给出绑定目标;
    channel_* 给出通道 LN 的数值, 数字通道号与模拟通道号二选一。
    """
    desc: str
    ied_type: Optional[str] = None
    ied_redundancy: Optional[str] = None
    ied_instance: Optional[str] = None
    ld_inst: Optional[str] = None
    ln_class: Optional[str] = None
    ln_inst: Optional[str] = None
    ln_prefix: Optional[str] = None
    do_name: Optional[str] = None
    do_inst: Optional[str] = None
    da_name: Optional[str] = None
    p_ln: Optional[str] = None
    p_do: Optional[str] = None
    p_da: Optional[str] = None
    channel_short_label: Optional[str] = None
    channel_lev_mod: Optional[str] = None
    channel_lev_mod_q: Optional[str] = None
    channel_digital_num: Optional[int] = None
    channel_analog_num: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LDEPFSettingData":
        """从 YAML 配置字典构建, 未识别的键保存在 extra 中"""
        known = {name for name in cls.__dataclass_fields__ if name != "extra"}
        values = {key: data.get(key) for key in known if key in data}
        for key in ("channel_digital_num", "channel_analog_num"):
            values[key] = _optional_int(values.get(key))
        for key in known - {"channel_digital_num", "channel_analog_num"}:
            if key in values:
                values[key] = _optional_str(values[key])
        if is_blank(values.get("desc")):
            raise ValueError(f"LDEPF setting without desc: {data}")
        extra = {key: value for key, value in data.items() if key not in known}
        return cls(extra=extra, **values)

    @property
    def bound_do_name(self) -> Optional[str]:
        """do_name + do_inst, do_inst 为空白或 "0" 时省略"""
        if is_blank(self.do_inst) or self.do_inst == "0":
            return self.do_name
        return f"{self.do_name}{self.do_inst}"

    @property
    def channel(self) -> Optional[Tuple[str, int, str]]:
        """
        通道 LN 选择: (lnClass, inst, 带前缀变体的前缀)

        只设置了数字通道号时为 RBDR / B, 只设置了模拟通道号时为 RADR / A,
        两者都设置或都未设置时为 None
        """
        if self.channel_digital_num is not None and self.channel_analog_num is None:
            return LN_RBDR, self.channel_digital_num, LN_PREFIX_B
        if self.channel_digital_num is None and self.channel_analog_num is not None:
            return LN_RADR, self.channel_analog_num, LN_PREFIX_A
        return None
