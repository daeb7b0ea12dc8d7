"""
SCL Utilities
=============

XML 元素查找 (忽略命名空间) 以及字符串比较辅助函数
"""

from typing import List, Optional
from xml.etree import ElementTree as ET


# ============================================================================
# 字符串辅助
# ============================================================================

def is_blank(value: Optional[str]) -> bool:
    """None、空串或仅包含空白字符时返回 True"""
    return value is None or not value.strip()


def trim_to_empty(value: Optional[str]) -> str:
    """去除首尾空白, None 转为空串"""
    return value.strip() if value else ""


def equals_or_both_blank(first: Optional[str], second: Optional[str]) -> bool:
    """两个值相等, 或者都为空白"""
    if is_blank(first) and is_blank(second):
        return True
    return first == second


def equals_or_not_set(expected: Optional[str], actual: Optional[str]) -> bool:
    """expected 未设置时视为匹配, 否则要求相等"""
    return expected is None or expected == actual


def xpath_attribute_filter(name: str, value: Optional[str]) -> str:
    """构造 XPath 属性过滤条件"""
    if value is None:
        return f"not(@{name})"
    return f'@{name}="{value}"'


# ============================================================================
# XML 辅助
# ============================================================================

def local_name(tag: str) -> str:
    """去除命名空间后的标签名"""
    return tag.rsplit("}", 1)[-1]


def namespace_of(elem: ET.Element) -> Optional[str]:
    """元素所在的命名空间 URI"""
    if elem.tag.startswith("{"):
        return elem.tag[1:].split("}", 1)[0]
    return None


def find_element(parent: ET.Element, local: str) -> Optional[ET.Element]:
    """
    在忽略命名空间的情况下查找子元素

    Args:
        parent: 父元素
        local: 元素本地名称

    Returns:
        找到的元素或 None
    """
    elem = parent.find(local)
    if elem is not None:
        return elem
    return parent.find(f"{{*}}{local}")


def findall_elements(parent: ET.Element, local: str) -> List[ET.Element]:
    """在忽略命名空间的情况下查找所有子元素"""
    elements = parent.findall(f"{{*}}{local}")
    if not elements:
        elements = parent.findall(local)
    return elements


def find_element_by_id(parent: ET.Element, tag_name: str, attr_id: str) -> Optional[ET.Element]:
    """在忽略命名空间的情况下按 id 属性查找子元素"""
    for elem in findall_elements(parent, tag_name):
        if elem.get("id") == attr_id:
            return elem
    return None


def find_child_by_name(parent: ET.Element, tag_name: str, name: str) -> Optional[ET.Element]:
    """按 name 属性查找子元素"""
    for elem in findall_elements(parent, tag_name):
        if elem.get("name") == name:
            return elem
    return None


def sub_element(parent: ET.Element, local: str, **attributes: str) -> ET.Element:
    """在父元素的命名空间下创建子元素"""
    namespace = namespace_of(parent)
    tag = f"{{{namespace}}}{local}" if namespace else local
    return ET.SubElement(parent, tag, attributes)


def set_attribute(elem: ET.Element, name: str, value: Optional[str]) -> None:
    """设置属性, value 为 None 时删除该属性"""
    if value is None:
        elem.attrib.pop(name, None)
    else:
        elem.set(name, value)
