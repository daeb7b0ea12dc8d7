"""
IED 身份一致性检查

自动绑定之前, 每个 IED 必须带有 compas:ICDHeader, 且其中的
ICDSystemVersionUUID 与 IEDName 不能为空, ICDSystemVersionUUID
在整个文档中必须唯一。
"""

from collections import defaultdict
from typing import Dict, List

from loguru import logger

from scl.data_model import IED
from scl.exceptions import ScdException
from scl.privates import PrivateType
from scl.scl_document import SclDocument
from scl.utils import is_blank

from .report import SclReportItem

DUPLICATED_UUID_MESSAGE = (
    "/IED/Private/compas:ICDHeader[@ICDSystemVersionUUID] must be unique"
    " but the same ICDSystemVersionUUID was found on several IED."
)


def check_icd_header_attributes(document: SclDocument) -> List[SclReportItem]:
    """每个缺少 ICDHeader 或其关键属性的 IED 产生一条 FATAL"""
    items = []
    for ied in document.iter_ieds():
        try:
            header = ied.icd_header
        except ScdException as e:
            items.append(SclReportItem.fatal(ied.xpath, str(e)))
            continue
        if header is None:
            items.append(SclReportItem.fatal(
                ied.xpath,
                f"IED has no Private {PrivateType.COMPAS_ICDHEADER.private_type} element",
            ))
        elif is_blank(header.icd_system_version_uuid) or is_blank(header.ied_name):
            items.append(SclReportItem.fatal(
                ied.xpath,
                f"IED private {PrivateType.COMPAS_ICDHEADER.private_type} "
                f"as no icdSystemVersionUUID or iedName attribute",
            ))
    return items


def check_icd_system_version_uuid_unicity(document: SclDocument) -> List[SclReportItem]:
    """同一 ICDSystemVersionUUID 出现在多个 IED 上时产生一条 ERROR"""
    ieds_by_uuid: Dict[str, List[IED]] = defaultdict(list)
    for ied in document.iter_ieds():
        try:
            header = ied.icd_header
        except ScdException:
            # 已由 check_icd_header_attributes 报告
            continue
        uuid = header.icd_system_version_uuid if header else None
        ieds_by_uuid[uuid or ""].append(ied)

    return [
        SclReportItem.error(", ".join(ied.xpath for ied in ieds), DUPLICATED_UUID_MESSAGE)
        for uuid, ieds in ieds_by_uuid.items()
        if not is_blank(uuid) and len(ieds) > 1
    ]


def validate_ieds(document: SclDocument) -> List[SclReportItem]:
    """
    检查全部 IED 的身份前置条件

    Args:
        document: SCL 文档

    Returns:
        诊断列表, 为空表示可以进行自动绑定
    """
    items = check_icd_header_attributes(document)
    items.extend(check_icd_system_version_uuid_unicity(document))
    if items:
        logger.warning(f"IED identity check failed with {len(items)} issue(s)")
    return items
