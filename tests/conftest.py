"""
Pytest 配置和共享 fixtures
===========================

提供测试中使用的共享配置和 fixtures
"""

import sys
from pathlib import Path

import pytest

# 添加项目源代码路径到 sys.path
project_root = Path(__file__).parent.parent
src_path = project_root / "src"
sys.path.insert(0, str(src_path))

from loguru import logger

from scl import SCDParser


# ============================================================================
# Pytest 配置钩子
# ============================================================================

def pytest_configure(config):
    """Pytest 配置钩子"""
    # 注册自定义标记
    config.addinivalue_line("markers", "unit: 单元测试")
    config.addinivalue_line("markers", "integration: 集成测试")


def pytest_collection_modifyitems(config, items):
    """修改测试项"""
    # 自动标记测试
    for item in items:
        # 如果测试在 test_integration_*.py 文件中，标记为 integration
        if "integration" in item.nodeid:
            item.add_marker(pytest.mark.integration)
        # 默认标记为 unit
        elif not list(item.iter_markers(name="integration")):
            item.add_marker(pytest.mark.unit)


# ============================================================================
# 会话级 Fixtures
# ============================================================================

@pytest.fixture(scope="session")
def test_data_dir():
    """测试数据目录"""
    return Path(__file__).parent / "test_data"


# ============================================================================
# 函数级 Fixtures
# ============================================================================

@pytest.fixture
def binding_scd(test_data_dir):
    """ExtRef 绑定测试用 SCD 文件路径"""
    return test_data_dir / "ext_ref_binding.scd"


@pytest.fixture
def binding_document(binding_scd):
    """每个测试独立解析, 修改互不影响"""
    return SCDParser().parse(binding_scd)


@pytest.fixture
def ldepf_document(test_data_dir):
    """LDEPF 测试用文档"""
    return SCDParser().parse(test_data_dir / "ldepf.scd")


@pytest.fixture
def ldepf_settings_file(test_data_dir):
    return test_data_dir / "ldepf_settings.yaml"


@pytest.fixture
def log_messages():
    """收集 loguru 输出的消息"""
    messages = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")

    yield messages

    logger.remove(handler_id)
