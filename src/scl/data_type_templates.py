"""
Data Type Templates
===================

DataTypeTemplates (LNodeType / DOType / DAType) 访问器。

逻辑节点通过 lnType 引用 LNodeType, 由此可以判断某个
DO / SDO / DA / BDA 路径是否存在于该节点类型中。
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional
from xml.etree import ElementTree as ET

from loguru import logger

from .exceptions import ResolutionError
from .utils import find_child_by_name, find_element_by_id, is_blank


_PATH_SEGMENT = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")


def split_data_path(path: str, label: str) -> List[str]:
    """
    拆分以 "." 分隔的数据路径, 例如 "Do.sdo1" 或 "da.bda1.bda2"

    Raises:
        ResolutionError: 路径为空或存在非法片段
    """
    if is_blank(path):
        raise ResolutionError(f"{label} path is empty")
    segments = path.split(".")
    for segment in segments:
        if not _PATH_SEGMENT.match(segment):
            raise ResolutionError(f"Malformed {label} path '{path}'")
    return segments


@dataclass(frozen=True)
class ResolvedDataPath:
    """在数据类型模板中解析得到的 DO/DA 路径"""
    do_name: str
    da_name: Optional[str] = None
    cdc: Optional[str] = None
    fc: Optional[str] = None
    b_type: Optional[str] = None


@dataclass
class DataTypeTemplates:
    """
    数据类型模板目录

    Attributes:
        element: DataTypeTemplates 元素, 文档中不存在时为 None
    """
    element: Optional[ET.Element]

    def find_lnode_type(self, type_id: str) -> Optional[ET.Element]:
        if self.element is None or is_blank(type_id):
            return None
        return find_element_by_id(self.element, "LNodeType", type_id)

    def find_do_type(self, type_id: str) -> Optional[ET.Element]:
        if self.element is None or is_blank(type_id):
            return None
        return find_element_by_id(self.element, "DOType", type_id)

    def find_da_type(self, type_id: str) -> Optional[ET.Element]:
        if self.element is None or is_blank(type_id):
            return None
        return find_element_by_id(self.element, "DAType", type_id)

    def _get_do_type(self, type_id: Optional[str]) -> ET.Element:
        do_type = self.find_do_type(type_id)
        if do_type is None:
            raise ResolutionError(f"Unknown DOType ({type_id}) in DataTypeTemplates")
        return do_type

    def _get_da_type(self, type_id: Optional[str]) -> ET.Element:
        da_type = self.find_da_type(type_id)
        if da_type is None:
            raise ResolutionError(f"Unknown DAType ({type_id}) in DataTypeTemplates")
        return da_type

    def resolve_data_path(self, ln_type: str, do_path: str,
                          da_path: Optional[str] = None) -> Optional[ResolvedDataPath]:
        """
        在 LNodeType 中解析 DO/DA 路径

        路径的第一个 DO 不属于该 LNodeType 时返回 None (不匹配);
        之后的 SDO / DA / BDA 链断裂或路径格式错误时抛出异常。

        Args:
            ln_type: LNodeType id
            do_path: 如 "Op" 或 "A.phsA"
            da_path: 如 "general" 或 "cVal.mag.f", 可为空

        Returns:
            解析结果或 None

        Raises:
            ResolutionError: 路径格式错误或类型链无法解析
        """
        lnode_type = self.find_lnode_type(ln_type)
        if lnode_type is None:
            raise ResolutionError(f"Unknown LNodeType ({ln_type}) in DataTypeTemplates")

        do_names = split_data_path(do_path, "DO")
        da_names = split_data_path(da_path, "DA") if not is_blank(da_path) else []

        do_elem = find_child_by_name(lnode_type, "DO", do_names[0])
        if do_elem is None:
            logger.debug(f"DO {do_names[0]} not declared in LNodeType {ln_type}")
            return None

        do_type = self._get_do_type(do_elem.get("type"))
        for sdo_name in do_names[1:]:
            sdo_elem = find_child_by_name(do_type, "SDO", sdo_name)
            if sdo_elem is None:
                raise ResolutionError(
                    f"Unknown Sub Data Object SDO ({sdo_name}) in DOType ({do_type.get('id')})"
                )
            do_type = self._get_do_type(sdo_elem.get("type"))

        if not da_names:
            return ResolvedDataPath(do_name=".".join(do_names), cdc=do_type.get("cdc"))

        da_elem = find_child_by_name(do_type, "DA", da_names[0])
        if da_elem is None:
            raise ResolutionError(
                f"Unknown Data Attribute DA ({da_names[0]}) in DOType ({do_type.get('id')})"
            )
        current = da_elem
        for bda_name in da_names[1:]:
            da_type = self._get_da_type(current.get("type"))
            bda_elem = find_child_by_name(da_type, "BDA", bda_name)
            if bda_elem is None:
                raise ResolutionError(
                    f"Unknown Basic Data Attribute BDA ({bda_name}) in DAType ({da_type.get('id')})"
                )
            current = bda_elem

        return ResolvedDataPath(
            do_name=".".join(do_names),
            da_name=".".join(da_names),
            cdc=do_type.get("cdc"),
            fc=da_elem.get("fc"),
            b_type=current.get("bType"),
        )
