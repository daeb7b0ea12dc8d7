"""
IED Identity Validator Unit Tests
=================================

测试 compas:ICDHeader 存在性与 ICDSystemVersionUUID 唯一性检查
"""

import copy
import sys
from pathlib import Path

import pytest

# 添加项目路径
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from extref import Severity, validate_ieds
from extref.ied_validator import DUPLICATED_UUID_MESSAGE
from scl import SCDParser


def build_document(*ied_headers):
    """按 (name, ICDHeader 属性字典或 None) 生成文档"""
    ieds = []
    for name, header in ied_headers:
        private = ""
        if header is not None:
            attributes = " ".join(f'{key}="{value}"' for key, value in header.items())
            private = f'<Private type="COMPAS-ICDHeader"><compas:ICDHeader {attributes}/></Private>'
        ieds.append(f'<IED name="{name}">{private}</IED>')
    return SCDParser().parse_string(
        '<SCL xmlns="http://www.iec.ch/61850/2003/SCL" '
        'xmlns:compas="https://www.lfenergy.org/compas/extension/v1">'
        + "".join(ieds) + "</SCL>"
    )


def duplicate_private(ied, private_type):
    """在 IED 下复制一份指定类型的 Private"""
    private = next(child for child in ied.element if child.get("type") == private_type)
    ied.element.insert(0, copy.deepcopy(private))


class TestValidateIeds:
    """测试 IED 身份检查"""

    def test_valid_document(self, binding_document):
        """测试所有 IED 合法"""
        assert validate_ieds(binding_document) == []

    def test_missing_icd_header(self):
        """测试缺少 ICDHeader"""
        document = build_document(
            ("IED_A", {"ICDSystemVersionUUID": "UUID-A", "IEDName": "IED_A"}),
            ("IED_B", None),
        )
        items = validate_ieds(document)
        assert len(items) == 1
        assert items[0].severity == Severity.FATAL
        assert items[0].xpath == '/SCL/IED[@name="IED_B"]'
        assert items[0].message == "IED has no Private COMPAS-ICDHeader element"

    @pytest.mark.parametrize("header", [
        {"IEDName": "IED_A"},
        {"ICDSystemVersionUUID": "UUID-A"},
        {"ICDSystemVersionUUID": " ", "IEDName": "IED_A"},
        {"ICDSystemVersionUUID": "UUID-A", "IEDName": ""},
    ])
    def test_blank_header_attributes(self, header):
        """测试 ICDSystemVersionUUID 或 IEDName 为空"""
        items = validate_ieds(build_document(("IED_A", header)))
        assert len(items) == 1
        assert items[0].is_fatal
        assert items[0].message == (
            "IED private COMPAS-ICDHeader as no icdSystemVersionUUID or iedName attribute"
        )

    def test_duplicated_uuid(self):
        """测试同一 ICDSystemVersionUUID 出现在多个 IED 上"""
        document = build_document(
            ("IED_A", {"ICDSystemVersionUUID": "UUID-1", "IEDName": "IED_A"}),
            ("IED_B", {"ICDSystemVersionUUID": "UUID-2", "IEDName": "IED_B"}),
            ("IED_C", {"ICDSystemVersionUUID": "UUID-1", "IEDName": "IED_C"}),
        )
        items = validate_ieds(document)
        assert len(items) == 1
        assert items[0].severity == Severity.ERROR
        assert items[0].xpath == '/SCL/IED[@name="IED_A"], /SCL/IED[@name="IED_C"]'
        assert items[0].message == DUPLICATED_UUID_MESSAGE

    def test_blank_uuid_not_grouped(self):
        """测试空 UUID 不参与唯一性检查"""
        document = build_document(
            ("IED_A", {"IEDName": "IED_A"}),
            ("IED_B", {"IEDName": "IED_B"}),
        )
        items = validate_ieds(document)
        assert len(items) == 2
        assert all(item.is_fatal for item in items)

    def test_read_only(self):
        """测试检查不修改文档"""
        document = build_document(
            ("IED_A", {"ICDSystemVersionUUID": "UUID-1", "IEDName": "IED_A"}),
            ("IED_B", {"ICDSystemVersionUUID": "UUID-1", "IEDName": "IED_B"}),
        )
        before = document.to_string()
        validate_ieds(document)
        assert document.to_string() == before

    def test_duplicated_icd_header_private(self, binding_document):
        """测试 ICDHeader 重复时对该 IED 产生 FATAL 而不抛出异常"""
        ied = binding_document.get_ied_by_name("IED_NAME3")
        duplicate_private(ied, "COMPAS-ICDHeader")

        items = validate_ieds(binding_document)

        assert len(items) == 1
        assert items[0].severity == Severity.FATAL
        assert items[0].xpath == '/SCL/IED[@name="IED_NAME3"]'
        assert "Expecting maximum 1 element of type ICDHeader" in items[0].message
