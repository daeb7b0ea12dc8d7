"""
LDEPF Settings Provider
=======================

LDEPF 参数表: 根据 ExtRef 的信号描述找到参数行, 并给出可作为该信号
源的 IED 列表。默认实现从 YAML 文件加载::

    ldepf_settings:
      - desc: DYN_LDEPF_DIGITAL CHANNEL 1_1_BOOLEEN_1_general_1
        ied_type: BCU
        ied_redundancy: A
        ied_instance: "1"
        ld_inst: LDPX
        ln_class: PTRC
        ln_inst: "1"
        do_name: Str
        do_inst: "0"
        da_name: general
        channel_digital_num: 1
        channel_short_label: TRIP
        channel_lev_mod: Positive or Rising
        channel_lev_mod_q: Other
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Optional, Union

import yaml
from loguru import logger

from scl.data_model import IED, ExtRef
from scl.exceptions import ScdException
from scl.privates import CompasBay
from scl.scl_document import SclDocument
from scl.utils import is_blank

from .dto import LDEPFSettingData

IED_TEST_NAME = "IEDTEST"


class LDEPFSettings(ABC):
    """LDEPF 参数来源"""

    @abstractmethod
    def get_setting_matching_ext_ref(self, ext_ref: ExtRef) -> Optional[LDEPFSettingData]:
        """与 ExtRef 信号描述匹配的参数行, 没有时返回 None"""

    @abstractmethod
    def get_ied_sources(self, document: SclDocument, bay: CompasBay,
                        setting: LDEPFSettingData) -> List[IED]:
        """同一间隔内可以作为该参数行信号源的 IED"""


class YamlLDEPFSettings(LDEPFSettings):
    """
    从 YAML 加载的参数表

    Attributes:
        settings: 参数行列表, 按文件顺序
    """

    def __init__(self, settings: Iterable[LDEPFSettingData]):
        self.settings = list(settings)

    @classmethod
    def from_file(cls, yaml_path: Union[str, Path]) -> "YamlLDEPFSettings":
        """
        从 YAML 文件加载参数表

        Raises:
            ScdException: 文件无法读取或格式不正确
        """
        try:
            with open(yaml_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load LDEPF settings from {yaml_path}: {e}")
            raise ScdException(f"Failed to load LDEPF settings from {yaml_path}: {e}") from e

        rows = config.get('ldepf_settings', []) if isinstance(config, dict) else None
        if not isinstance(rows, list):
            raise ScdException(f"{yaml_path}: 'ldepf_settings' must be a list")
        try:
            settings = cls(LDEPFSettingData.from_dict(row) for row in rows)
        except (TypeError, ValueError) as e:
            raise ScdException(f"{yaml_path}: invalid LDEPF setting: {e}") from e
        logger.info(f"Loaded {len(settings.settings)} LDEPF setting(s) from {yaml_path}")
        return settings

    def get_setting_matching_ext_ref(self, ext_ref: ExtRef) -> Optional[LDEPFSettingData]:
        for setting in self.settings:
            if self._matches(setting, ext_ref):
                return setting
        return None

    @staticmethod
    def _matches(setting: LDEPFSettingData, ext_ref: ExtRef) -> bool:
        if setting.desc != ext_ref.desc:
            return False
        for expected, actual in ((setting.p_ln, ext_ref.p_ln),
                                 (setting.p_do, ext_ref.p_do),
                                 (setting.p_da, ext_ref.p_da)):
            if not is_blank(expected) and expected != actual:
                return False
        return True

    def get_ied_sources(self, document: SclDocument, bay: CompasBay,
                        setting: LDEPFSettingData) -> List[IED]:
        sources = []
        for ied in document.iter_ieds():
            if ied.name == IED_TEST_NAME or not self._is_source(ied, bay, setting):
                continue
            sources.append(ied)
        return sources

    @staticmethod
    def _is_source(ied: IED, bay: CompasBay, setting: LDEPFSettingData) -> bool:
        try:
            header = ied.icd_header
            ied_bay = ied.compas_bay
        except ScdException as e:
            logger.warning(f"IED {ied.name} skipped as LDEPF source: {e}")
            return False
        if header is None:
            return False
        if (header.ied_type != setting.ied_type
                or header.ied_redundancy != setting.ied_redundancy
                or header.ied_instance != setting.ied_instance):
            return False
        if ied_bay is None or ied_bay.uuid != bay.uuid:
            return False
        logical_device = ied.find_logical_device(setting.ld_inst) if setting.ld_inst else None
        return logical_device is not None and logical_device.is_active
