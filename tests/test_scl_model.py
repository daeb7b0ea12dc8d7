"""
SCL Model Unit Tests
====================

测试 SCD 解析、保存以及访问器层次结构
"""

import sys
from pathlib import Path
from xml.etree import ElementTree as ET

import pytest

# 添加项目路径
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from scl import (
    ControlBlockType, ExtRef, LDeviceStatus, SCDParser, ScdException, ServiceType,
    StructureLookupError,
)
from scl.data_type_templates import split_data_path
from scl.exceptions import ResolutionError
from scl.privates import FlowStatus, PrivateType, extract_compas_private
from scl.utils import equals_or_both_blank, equals_or_not_set, is_blank, trim_to_empty


MINIMAL_SCL = """<?xml version="1.0" encoding="UTF-8"?>
<SCL xmlns="http://www.iec.ch/61850/2003/SCL" xmlns:compas="https://www.lfenergy.org/compas/extension/v1">
  <Header id="MINIMAL"/>
  <IED name="IED_A">
    <Private type="COMPAS-ICDHeader">
      <compas:ICDHeader ICDSystemVersionUUID="UUID-A" IEDName="IED_A"/>
    </Private>
    <Private type="COMPAS-ICDHeader">
      <compas:ICDHeader ICDSystemVersionUUID="UUID-B" IEDName="IED_A"/>
    </Private>
    <AccessPoint name="AP">
      <Server>
        <LDevice inst="LD_A">
          <LN0 lnClass="LLN0" inst="" lnType="LN0_TYPE">
            <DOI name="Mod">
              <DAI name="stVal" valImport="false">
                <Val>on</Val>
              </DAI>
            </DOI>
            <DOI name="NamPlt">
              <DAI name="vendor">
                <Val>VENDOR</Val>
                <Val>SECOND</Val>
              </DAI>
            </DOI>
          </LN0>
        </LDevice>
      </Server>
    </AccessPoint>
  </IED>
</SCL>
"""


# ============================================================================
# 字符串辅助函数测试
# ============================================================================

class TestStringHelpers:
    """测试空白比较辅助函数"""

    def test_is_blank(self):
        assert is_blank(None)
        assert is_blank("")
        assert is_blank("  ")
        assert not is_blank("a")

    def test_trim_to_empty(self):
        assert trim_to_empty(None) == ""
        assert trim_to_empty(" PX ") == "PX"

    def test_equals_or_both_blank(self):
        assert equals_or_both_blank(None, "")
        assert equals_or_both_blank(" ", None)
        assert equals_or_both_blank("A", "A")
        assert not equals_or_both_blank("A", None)

    def test_equals_or_not_set(self):
        assert equals_or_not_set(None, "anything")
        assert equals_or_not_set("A", "A")
        assert not equals_or_not_set("A", None)


# ============================================================================
# 解析与保存测试
# ============================================================================

class TestSCDParser:
    """测试 SCD 解析"""

    def test_parse_file(self, binding_scd):
        """测试解析文件"""
        document = SCDParser().parse(binding_scd)
        assert [ied.name for ied in document.ieds] == ["IED_NAME1", "IED_NAME2", "IED_NAME3"]
        assert document.source_path == Path(binding_scd)
        assert document.header.id == "SCD_EXTREF_BINDING"

    def test_parse_missing_file(self, tmp_path):
        """测试文件不存在"""
        with pytest.raises(ScdException):
            SCDParser().parse(tmp_path / "missing.scd")

    def test_parse_malformed_xml(self):
        """测试非法 XML"""
        with pytest.raises(ScdException):
            SCDParser().parse_string("<SCL><IED></SCL>")

    def test_parse_not_scl_root(self):
        """测试根元素不是 SCL"""
        with pytest.raises(ScdException, match="not an SCL document"):
            SCDParser().parse_string("<Other/>")

    def test_parse_without_namespace(self):
        """测试不带命名空间的文件"""
        document = SCDParser().parse_string('<SCL><IED name="PLAIN"/></SCL>')
        assert document.find_ied_by_name("PLAIN") is not None

    def test_save_keeps_namespaces(self, binding_document, tmp_path):
        """测试保存后命名空间前缀不变"""
        output = tmp_path / "saved.scd"
        binding_document.save(output)

        content = output.read_text(encoding="utf-8")
        assert 'xmlns="http://www.iec.ch/61850/2003/SCL"' in content
        assert 'xmlns:compas="https://www.lfenergy.org/compas/extension/v1"' in content
        assert "<compas:ICDHeader" in content
        assert "ns0:" not in content

        reloaded = SCDParser().parse(output)
        assert [ied.name for ied in reloaded.ieds] == [ied.name for ied in binding_document.ieds]

    def test_save_keeps_modifications(self, binding_document, tmp_path):
        """测试修改写入文件"""
        ied = binding_document.get_ied_by_name("IED_NAME1")
        ext_ref = next(ied.get_logical_device("LD_INST11").ln0.iter_ext_refs())
        ext_ref.ied_name = "CHANGED"
        output = tmp_path / "changed.scd"
        binding_document.save(output)

        reloaded = SCDParser().parse(output)
        ied = reloaded.get_ied_by_name("IED_NAME1")
        assert next(ied.get_logical_device("LD_INST11").ln0.iter_ext_refs()).ied_name == "CHANGED"


# ============================================================================
# Header 测试
# ============================================================================

class TestHeader:
    """测试 Header 修改记录"""

    def test_add_history_item(self, binding_document):
        header = binding_document.header
        hitem = header.add_history_item("tester", "update", "unit test")

        assert hitem.get("who") == "tester"
        assert hitem.get("what") == "update"
        assert hitem.get("version") == "1"
        assert hitem.get("revision") == "A"
        assert len(list(header.iter_history_items())) == 1

        header.add_history_item("tester", "second", "unit test")
        assert len(list(header.iter_history_items())) == 2


# ============================================================================
# IED / LDevice / LN 访问器测试
# ============================================================================

class TestIED:
    """测试 IED 访问器"""

    def test_get_ied_by_name_unknown(self, binding_document):
        with pytest.raises(StructureLookupError):
            binding_document.get_ied_by_name("UNKNOWN")

    def test_icd_header(self, binding_document):
        header = binding_document.get_ied_by_name("IED_NAME2").icd_header
        assert header.icd_system_version_uuid == "UUID-2"
        assert header.ied_name == "IED_NAME2"
        assert header.ied_type == "SCU"
        assert header.ied_redundancy == "A"
        assert header.ied_instance == "1"
        assert header.vendor_name == "VENDOR"

    def test_no_compas_bay(self, binding_document):
        assert binding_document.get_ied_by_name("IED_NAME1").compas_bay is None

    def test_xpath(self, binding_document):
        assert binding_document.get_ied_by_name("IED_NAME1").xpath == '/SCL/IED[@name="IED_NAME1"]'

    def test_logical_devices(self, binding_document):
        ied = binding_document.get_ied_by_name("IED_NAME2")
        assert [ld.inst for ld in ied.iter_logical_devices()] == ["LD_INST21", "LD_INST22"]
        assert ied.find_logical_device("LD_INST99") is None

    def test_get_logical_device_unknown(self, binding_document):
        ied = binding_document.get_ied_by_name("IED_NAME2")
        with pytest.raises(StructureLookupError, match="LDevice.inst 'LD_INST99' not found in IED 'IED_NAME2'"):
            ied.get_logical_device("LD_INST99")

    def test_duplicated_private_raises(self):
        document = SCDParser().parse_string(MINIMAL_SCL)
        ied = document.get_ied_by_name("IED_A")
        with pytest.raises(ScdException):
            extract_compas_private(ied.element, PrivateType.COMPAS_ICDHEADER)


class TestLogicalDevice:
    """测试 LDevice 访问器"""

    def test_status(self, binding_document):
        ied1 = binding_document.get_ied_by_name("IED_NAME1")
        assert ied1.get_logical_device("LD_INST11").status == "on"
        assert ied1.get_logical_device("LD_INST11").is_active
        assert ied1.get_logical_device("LD_INST12").status == "off"
        assert LDeviceStatus.from_string("off") == LDeviceStatus.OFF

        ied3 = binding_document.get_ied_by_name("IED_NAME3")
        assert ied3.get_logical_device("LD_INST31").status is None

    def test_logical_nodes_ln0_first(self, binding_document):
        ld = binding_document.get_ied_by_name("IED_NAME2").get_logical_device("LD_INST21")
        names = [ln.name for ln in ld.iter_logical_nodes()]
        assert names == ["LLN0", "ANCR1", "PXMMXU1", "GGIO1"]
        assert [ln.name for ln in ld.iter_logical_nodes(include_ln0=False)] == ["ANCR1", "PXMMXU1", "GGIO1"]

    def test_find_logical_node(self, binding_document):
        ld = binding_document.get_ied_by_name("IED_NAME2").get_logical_device("LD_INST21")
        assert ld.find_logical_node("LLN0").is_ln0
        assert ld.find_logical_node("ANCR", "1").name == "ANCR1"
        assert ld.find_logical_node("ANCR", "1", "").name == "ANCR1"
        assert ld.find_logical_node("MMXU", "1", "PX").name == "PXMMXU1"
        assert ld.find_logical_node("MMXU", "1") is None

    def test_get_logical_node_unknown(self, binding_document):
        ld = binding_document.get_ied_by_name("IED_NAME2").get_logical_device("LD_INST21")
        with pytest.raises(StructureLookupError, match=r"LDevice \[LD_INST21\] has no LN \[PTRC,1,None\]"):
            ld.get_logical_node("PTRC", "1")

    def test_update_ld_name(self, binding_document):
        ld = binding_document.get_ied_by_name("IED_NAME1").get_logical_device("LD_INST11")
        assert ld.update_ld_name() == "IED_NAME1LD_INST11"
        assert ld.ld_name == "IED_NAME1LD_INST11"

    def test_update_ld_name_too_long(self, binding_document):
        ied = binding_document.get_ied_by_name("IED_NAME1")
        ied.element.set("name", "A_VERY_LONG_IED_NAME_FOR_TESTING")
        with pytest.raises(ScdException, match="more than 33 characters"):
            ied.get_logical_device("LD_INST11").update_ld_name()


class TestLogicalNode:
    """测试 LN 访问器"""

    def test_xpath(self, binding_document):
        ld = binding_document.get_ied_by_name("IED_NAME2").get_logical_device("LD_INST21")
        assert ld.ln0.xpath.endswith('/LDevice[@inst="LD_INST21"]/LN0')
        assert ld.find_logical_node("MMXU", "1", "PX").xpath.endswith(
            '/LN[@lnClass="MMXU" and @inst="1" and @prefix="PX"]'
        )
        assert ld.find_logical_node("ANCR", "1").xpath.endswith(
            '/LN[@lnClass="ANCR" and @inst="1" and not(@prefix)]'
        )

    def test_inputs_and_flows(self, binding_document):
        ld = binding_document.get_ied_by_name("IED_NAME1").get_logical_device("LD_INST11")
        assert ld.ln0.has_inputs
        assert len(ld.ln0.ext_refs) == 5
        flows = ld.ln0.compas_flows
        assert [flow.data_stream_key for flow in flows] == ["STAT_1", "STAT_2", "STAT_3", "STAT_INACTIVE"]
        assert flows[3].flow_status == FlowStatus.INACTIVE

        ld2 = binding_document.get_ied_by_name("IED_NAME2").get_logical_device("LD_INST21")
        assert not ld2.ln0.has_inputs
        assert ld2.ln0.compas_flows == []

    def test_get_dai_value(self, binding_document):
        ln0 = binding_document.get_ied_by_name("IED_NAME1").get_logical_device("LD_INST11").ln0
        assert ln0.get_dai_value("Mod", "stVal") == "on"
        assert ln0.get_dai_value("Mod", "q") is None
        assert ln0.get_dai_value("Beh", "stVal") is None

    def test_update_dai(self, binding_document):
        ln0 = binding_document.get_ied_by_name("IED_NAME1").get_logical_device("LD_INST11").ln0
        assert ln0.update_dai("Mod", "stVal", "off") is True
        assert ln0.get_dai_value("Mod", "stVal") == "off"
        assert ln0.update_dai("Mod", "stVal", "off") is False

    def test_update_dai_replaces_all_values(self):
        document = SCDParser().parse_string(MINIMAL_SCL)
        ln0 = document.get_ied_by_name("IED_A").get_logical_device("LD_A").ln0
        ln0.update_dai("NamPlt", "vendor", "NEW")
        dai = ln0.find_doi("NamPlt").find_dai("vendor")
        assert [val.text for val in dai.element] == ["NEW"]

    def test_update_dai_missing(self, binding_document):
        ln0 = binding_document.get_ied_by_name("IED_NAME1").get_logical_device("LD_INST11").ln0
        with pytest.raises(StructureLookupError):
            ln0.update_dai("Beh", "stVal", "on")
        with pytest.raises(StructureLookupError):
            ln0.update_dai("Mod", "q", "good")

    def test_update_dai_not_updatable(self):
        document = SCDParser().parse_string(MINIMAL_SCL)
        ln0 = document.get_ied_by_name("IED_A").get_logical_device("LD_A").ln0
        assert not ln0.find_doi("Mod").find_dai("stVal").is_updatable
        with pytest.raises(ScdException, match="valImport"):
            ln0.update_dai("Mod", "stVal", "off")
        assert ln0.get_dai_value("Mod", "stVal") == "on"

    def test_control_block_and_data_set(self, binding_document):
        ln0 = binding_document.get_ied_by_name("IED_NAME2").get_logical_device("LD_INST21").ln0
        control_block = ln0.find_control_block("CB_GOOSE")
        assert control_block.cb_type == ControlBlockType.GSE
        assert control_block.cb_type.service_type == ServiceType.GOOSE
        assert control_block.data_set.name == "DS_GOOSE"
        fcdas = list(control_block.data_set.iter_fcdas())
        assert fcdas[0]["doName"] == "DoName"
        assert ln0.find_control_block("UNKNOWN") is None


# ============================================================================
# ExtRef 测试
# ============================================================================

class TestExtRef:
    """测试 ExtRef 访问器"""

    def _ext_ref(self, document, desc):
        ln0 = document.get_ied_by_name("IED_NAME1").get_logical_device("LD_INST11").ln0
        return next(ext_ref for ext_ref in ln0.iter_ext_refs() if ext_ref.desc == desc)

    def test_attributes(self, binding_document):
        ext_ref = self._ext_ref(binding_document, "STAT_1")
        assert ext_ref.ied_name == "UUID-2"
        assert ext_ref.ld_inst == "LD_INST21"
        assert ext_ref.ln_class == "ANCR"
        assert ext_ref.ln_inst == "1"
        assert ext_ref.prefix is None
        assert ext_ref.service_type == ServiceType.GOOSE
        assert ext_ref.p_serv_t == ServiceType.GOOSE
        assert ext_ref.src_ln_class == "LLN0"
        assert ext_ref.src_cb_name == "CB_GOOSE"
        assert ext_ref.is_bound
        assert ext_ref.xpath.endswith('/LN0/Inputs/ExtRef[@desc="STAT_1"]')

    def test_clear_binding(self, binding_document):
        ext_ref = self._ext_ref(binding_document, "STAT_1")
        ext_ref.clear_binding()
        assert ext_ref.ied_name is None
        assert ext_ref.ln_class is None
        assert ext_ref.service_type is None
        assert ext_ref.src_cb_name is None
        assert ext_ref.desc == "STAT_1"
        assert ext_ref.p_do == "DoName"
        assert not ext_ref.is_bound

    def test_set_binding(self, binding_document):
        ext_ref = self._ext_ref(binding_document, "STAT_UNBOUND")
        ext_ref.set_binding("IED_NAME2", "LD_INST21", "ANCR", ln_inst="1",
                            do_name="DoName", service_type=ServiceType.GOOSE)
        assert ext_ref.element.get("iedName") == "IED_NAME2"
        assert ext_ref.element.get("serviceType") == "GOOSE"
        assert "prefix" not in ext_ref.element.attrib
        assert "daName" not in ext_ref.element.attrib

    def test_ln_class_is_first_token(self):
        elem = ET.Element("ExtRef", {"lnClass": "PTRC GGIO"})
        assert ExtRef(elem, None).ln_class == "PTRC"


class TestServiceType:
    """测试 ServiceType 枚举"""

    def test_from_string(self):
        assert ServiceType.from_string("GOOSE") == ServiceType.GOOSE
        assert ServiceType.from_string("goose") == ServiceType.GOOSE
        assert ServiceType.from_string("Poll") == ServiceType.POLL
        assert ServiceType.from_string("smv") == ServiceType.SMV

    def test_from_string_invalid(self):
        assert ServiceType.from_string("invalid") is None
        assert ServiceType.from_string(None) is None
        assert ServiceType.from_string("", ServiceType.REPORT) == ServiceType.REPORT


# ============================================================================
# 数据类型模板测试
# ============================================================================

class TestDataTypeTemplates:
    """测试数据类型模板路径解析"""

    def test_split_data_path(self):
        assert split_data_path("A.phsA", "DO") == ["A", "phsA"]
        with pytest.raises(ResolutionError):
            split_data_path("A..phsA", "DO")
        with pytest.raises(ResolutionError):
            split_data_path("A.1phs", "DO")
        with pytest.raises(ResolutionError):
            split_data_path("", "DO")

    def test_resolve_do_and_bda(self, binding_document):
        templates = binding_document.data_type_templates
        resolved = templates.resolve_data_path("MMXU_TYPE", "A.phsA", "cVal.mag.f")
        assert resolved.do_name == "A.phsA"
        assert resolved.da_name == "cVal.mag.f"
        assert resolved.cdc == "CMV"
        assert resolved.fc == "MX"
        assert resolved.b_type == "FLOAT32"

    def test_resolve_do_only(self, binding_document):
        resolved = binding_document.data_type_templates.resolve_data_path("ANCR_TYPE", "DoName")
        assert resolved.do_name == "DoName"
        assert resolved.da_name is None
        assert resolved.cdc == "SPS"

    def test_first_do_not_declared(self, binding_document):
        assert binding_document.data_type_templates.resolve_data_path("ANCR_TYPE", "A.phsA") is None

    def test_unknown_lnode_type(self, binding_document):
        with pytest.raises(ResolutionError, match="Unknown LNodeType"):
            binding_document.data_type_templates.resolve_data_path("MISSING", "Mod")

    def test_broken_chain(self, binding_document):
        templates = binding_document.data_type_templates
        with pytest.raises(ResolutionError):
            templates.resolve_data_path("MMXU_TYPE", "A.phsC")
        with pytest.raises(ResolutionError):
            templates.resolve_data_path("ANCR_TYPE", "DoName", "unknown")
        with pytest.raises(ResolutionError):
            templates.resolve_data_path("ANCR_TYPE", "DoName", "origin.unknown")
        with pytest.raises(ResolutionError, match="Unknown DOType"):
            templates.resolve_data_path("BROKEN_TYPE", "Ind")
