"""
SCD Parser Module
=================

读取 SCD / ICD 文件并构建共享的 SclDocument。

解析时登记文件中声明的全部命名空间前缀, 保证保存时 SCL 默认
命名空间与 compas 等扩展前缀保持不变。

基于IEC 61850-6标准
"""

import io
import re
from pathlib import Path
from typing import Union
from xml.etree import ElementTree as ET

from loguru import logger

from .exceptions import ScdException
from .scl_document import SclDocument
from .utils import local_name

SCL_NAMESPACE = "http://www.iec.ch/61850/2003/SCL"


class SCDParser:
	def parse(self, scd_path: Union[str, Path]) -> SclDocument:
		"""
		从 SCD (Substation Configuration Description) 文件加载文档

		支持带有或不带 XML 命名空间的 SCD 文件

		Args:
			scd_path: SCD 文件路径

		Returns:
			SclDocument

		Raises:
			ScdException: 文件无法读取或不是 SCL 文档
		"""
		scd_path = Path(scd_path)
		try:
			with open(scd_path, "rb") as f:
				content = f.read()
		except OSError as e:
			logger.error(f"Failed to load SCD file {scd_path}: {e}")
			raise ScdException(f"Failed to load SCD file {scd_path}: {e}") from e

		document = self._parse_bytes(content, str(scd_path))
		document.source_path = scd_path
		logger.info(f"Loaded SCD file {scd_path} with {len(document.ieds)} IED(s)")
		return document

	def parse_string(self, content: Union[str, bytes]) -> SclDocument:
		"""从字符串解析 SCL 文档"""
		if isinstance(content, str):
			content = content.encode("utf-8")
		return self._parse_bytes(content, "<string>")

	def _parse_bytes(self, content: bytes, origin: str) -> SclDocument:
		self._register_namespaces(content, origin)
		try:
			tree = ET.ElementTree(ET.fromstring(content))
		except ET.ParseError as e:
			logger.error(f"Failed to parse SCD {origin}: {e}")
			raise ScdException(f"Failed to parse SCD {origin}: {e}") from e

		root = tree.getroot()
		if local_name(root.tag) != "SCL":
			logger.error(f"{origin} is not an SCL document (root element {local_name(root.tag)})")
			raise ScdException(f"{origin} is not an SCL document")
		return SclDocument(tree)

	def _register_namespaces(self, content: bytes, origin: str) -> None:
		"""登记文档声明的命名空间前缀, 默认命名空间固定为 SCL"""
		ET.register_namespace("", SCL_NAMESPACE)
		try:
			for _event, (prefix, uri) in ET.iterparse(io.BytesIO(content), events=("start-ns",)):
				if prefix and not re.match(r"ns\d+$", prefix):
					ET.register_namespace(prefix, uri)
		except ET.ParseError as e:
			logger.error(f"Failed to parse SCD {origin}: {e}")
			raise ScdException(f"Failed to parse SCD {origin}: {e}") from e
