"""
SCL Document
============

共享的 SCL 文档: 持有 ElementTree, 所有访问器都指向同一棵元素树,
因此任何修改都会在保存时原样写出。
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional, Union
from xml.etree import ElementTree as ET

from loguru import logger

from .data_model import IED
from .data_type_templates import DataTypeTemplates
from .exceptions import ScdException, StructureLookupError
from .utils import find_element, findall_elements, sub_element


@dataclass
class Header:
    """SCL Header, 维护 History/Hitem 修改记录"""
    element: ET.Element

    @property
    def id(self) -> Optional[str]:
        return self.element.get("id")

    @property
    def version(self) -> Optional[str]:
        return self.element.get("version")

    @property
    def revision(self) -> Optional[str]:
        return self.element.get("revision")

    def iter_history_items(self) -> Iterator[ET.Element]:
        history = find_element(self.element, "History")
        if history is None:
            return
        yield from findall_elements(history, "Hitem")

    def add_history_item(self, who: str, what: str, why: str) -> ET.Element:
        """
        追加一条 History/Hitem, 版本号取自 Header

        Args:
            who: 修改人
            what: 修改内容
            why: 修改原因

        Returns:
            新建的 Hitem 元素
        """
        history = find_element(self.element, "History")
        if history is None:
            history = sub_element(self.element, "History")
        return sub_element(
            history, "Hitem",
            version=self.version or "",
            revision=self.revision or "",
            when=datetime.now().strftime("%a %b %d %H:%M:%S %Y"),
            who=who,
            what=what,
            why=why,
        )


class SclDocument:
    """
    SCL 文档

    Attributes:
        tree: 解析得到的 ElementTree
        source_path: 来源文件路径 (从字符串解析时为 None)
    """

    def __init__(self, tree: ET.ElementTree, source_path: Optional[Path] = None):
        self.tree = tree
        self.source_path = source_path

    @property
    def root(self) -> ET.Element:
        return self.tree.getroot()

    @property
    def header(self) -> Optional[Header]:
        header_elem = find_element(self.root, "Header")
        return Header(header_elem) if header_elem is not None else None

    @property
    def ieds(self) -> List[IED]:
        """文档中的全部 IED, 按文档顺序"""
        return list(self.iter_ieds())

    def iter_ieds(self) -> Iterator[IED]:
        for ied_elem in findall_elements(self.root, "IED"):
            yield IED(ied_elem, self)

    def find_ied_by_name(self, name: str) -> Optional[IED]:
        for ied in self.iter_ieds():
            if ied.name == name:
                return ied
        return None

    def get_ied_by_name(self, name: str) -> IED:
        """按名称获取 IED, 找不到时抛出 StructureLookupError"""
        ied = self.find_ied_by_name(name)
        if ied is None:
            raise StructureLookupError(f"IED.name '{name}' not found in SCD file")
        return ied

    @property
    def data_type_templates(self) -> DataTypeTemplates:
        return DataTypeTemplates(find_element(self.root, "DataTypeTemplates"))

    def to_string(self) -> str:
        """序列化为 XML 字符串"""
        return ET.tostring(self.root, encoding="unicode")

    def save(self, path: Union[str, Path]) -> None:
        """
        保存到文件

        Raises:
            ScdException: 写入失败
        """
        try:
            self.tree.write(str(path), encoding="utf-8", xml_declaration=True)
        except OSError as e:
            logger.error(f"Failed to save SCD file {path}: {e}")
            raise ScdException(f"Failed to save SCD file {path}: {e}") from e
        logger.info(f"SCD file saved to {path}")
