"""
SCL Exceptions
==============

SCD 处理过程中抛出的异常类型
"""


class ScdException(Exception):
    """SCD 处理异常基类"""


class StructureLookupError(ScdException):
    """在模型中找不到 IED / LDevice / LN / 控制块等结构元素"""


class PayloadValidationError(ScdException):
    """信号、绑定或源信息缺失或不合法"""


class BindingInvariantError(ScdException):
    """绑定违反约束 (自绑定、Poll 服务类型、绑定与 ExtRef 不一致)"""


class ResolutionError(ScdException):
    """数据路径格式错误, 或在数据类型模板中无法解析"""
