#!/usr/bin/env python3
"""
SCL ExtRef Binder
=================

SCD 文件中 ExtRef 的自动绑定工具

命令:
- auto-bind: 按 ICDSystemVersionUUID 把 ExtRef@iedName 替换为 IED 名称
- ldepf:     按参数表绑定 LDEPF ExtRef 并更新通道逻辑节点
- binders:   列出某个 IED 中可以绑定给定信号的节点
- bind:      把一个 ExtRef 绑定到源 IED 中唯一的候选节点
- source:    为已绑定的 ExtRef 写入源控制块

用法:
    python main.py auto-bind station.scd -o station_bound.scd
    python main.py ldepf station.scd --settings config/ldepf_settings.yaml -o out.scd
    python main.py binders station.scd --ied IED_NAME2 --ld LDPX --p-do Str --p-da general
    python main.py bind station.scd --holder-ied IED1 --holder-ld LD1 --desc SIG --ied IED2 -o out.scd
    python main.py source station.scd --holder-ied IED1 --holder-ld LD1 --desc SIG --src-ld LD2 --cb CB -o out.scd
"""

import sys
import argparse
from pathlib import Path
from typing import List

# 添加项目路径
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from loguru import logger

from extref import (
    ExtRefBindingInfo,
    ExtRefInfo,
    ExtRefService,
    ExtRefSignalInfo,
    ExtRefSourceInfo,
    SclReportItem,
    YamlLDEPFSettings,
    has_errors,
)
from scl import ExtRef, SCDParser, ScdException, SclDocument, StructureLookupError

TOOL_NAME = "scl-extref-binder"


def setup_logging(log_file: str = None, level: str = "INFO"):
    """配置日志"""
    # 移除默认处理器
    logger.remove()

    # 控制台输出
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{module}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=level,
        colorize=True
    )

    # 文件输出
    if log_file:
        log_path = PROJECT_ROOT / "logs"
        log_path.mkdir(exist_ok=True)

        logger.add(
            log_path / log_file,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {module}:{function}:{line} - {message}",
            level=level,
            rotation="10 MB",
            retention="7 days",
            compression="zip"
        )


def print_report(items: List[SclReportItem]):
    """输出诊断列表"""
    if not items:
        print("No diagnostic")
        return
    for item in items:
        print(item)


def save_document(document: SclDocument, output: str, what: str):
    """写入修改记录并保存"""
    header = document.header
    if header is not None:
        header.add_history_item(TOOL_NAME, what, "ExtRef binding")
    document.save(output)


def run_auto_bind(document: SclDocument, args) -> int:
    """按 ICDSystemVersionUUID 绑定全部 ExtRef@iedName"""
    items = ExtRefService().update_all_ext_ref_ied_names(document)
    print_report(items)
    if args.output:
        save_document(document, args.output, "Update all ExtRef iedName")
    return 1 if has_errors(items) else 0


def run_ldepf(document: SclDocument, args) -> int:
    """按参数表绑定 LDEPF ExtRef"""
    settings = YamlLDEPFSettings.from_file(args.settings)
    items = ExtRefService().manage_binding_for_ldepf(document, settings)
    print_report(items)
    if args.output:
        save_document(document, args.output, "Manage binding for LDEPF")
    return 1 if has_errors(items) else 0


def run_binders(document: SclDocument, args) -> int:
    """列出绑定候选项"""
    signal_info = ExtRefSignalInfo(p_ln=args.p_ln, p_do=args.p_do, p_da=args.p_da)
    candidates = ExtRefService().get_ext_ref_binders(document, args.ied, signal_info, args.ld)
    print(f"\nBinding candidates in {args.ied}: {len(candidates)}")
    for candidate in candidates:
        print(
            f"  {candidate.ld_inst}/{candidate.prefix or ''}{candidate.ln_class}{candidate.ln_inst}"
            f".{candidate.do_name}{'.' + candidate.da_name if candidate.da_name else ''}"
            f"  [{candidate.fc or '-'}] ({candidate.ln_type})"
        )
    return 0


def find_holder_ext_ref(document: SclDocument, args) -> ExtRef:
    """按持有节点位置与 desc 查找 ExtRef"""
    ln = document.get_ied_by_name(args.holder_ied) \
        .get_logical_device(args.holder_ld) \
        .get_logical_node(args.holder_ln, args.holder_ln_inst, args.holder_prefix)
    for ext_ref in ln.iter_ext_refs():
        if ext_ref.desc == args.desc:
            return ext_ref
    raise StructureLookupError(f"Unknown ExtRef desc '{args.desc}' in {ln.xpath}")


def holder_info(args, **payloads) -> ExtRefInfo:
    return ExtRefInfo(
        holder_ied_name=args.holder_ied,
        holder_ld_inst=args.holder_ld,
        holder_ln_class=args.holder_ln,
        holder_ln_inst=args.holder_ln_inst,
        holder_ln_prefix=args.holder_prefix,
        **payloads
    )


def run_bind(document: SclDocument, args) -> int:
    """把 ExtRef 绑定到源 IED 中唯一的候选节点"""
    service = ExtRefService()
    ext_ref = find_holder_ext_ref(document, args)
    signal_info = ExtRefSignalInfo.from_ext_ref(ext_ref)
    candidates = service.get_ext_ref_binders(document, args.ied, signal_info, args.ld)
    if len(candidates) != 1:
        logger.error(f"ExtRef {args.desc}: {len(candidates)} binding candidate(s) in {args.ied}, expected 1")
        return 1

    binding_info = candidates[0].to_binding_info(ext_ref.p_serv_t)
    ext_ref = service.update_ext_ref_binders(
        document, holder_info(args, signal_info=signal_info, binding_info=binding_info)
    )
    print(f"ExtRef {ext_ref.desc} bound: {ext_ref.to_dict()}")
    if args.output:
        save_document(document, args.output, f"Bind ExtRef {ext_ref.desc}")
    return 0


def run_source(document: SclDocument, args) -> int:
    """为已绑定的 ExtRef 写入源控制块"""
    ext_ref = find_holder_ext_ref(document, args)
    source_info = ExtRefSourceInfo(
        src_ld_inst=args.src_ld,
        src_prefix=args.src_prefix,
        src_ln_class=args.src_ln,
        src_ln_inst=args.src_ln_inst,
        src_cb_name=args.cb,
    )
    ext_ref = ExtRefService().update_ext_ref_source(
        document,
        holder_info(
            args,
            signal_info=ExtRefSignalInfo.from_ext_ref(ext_ref),
            binding_info=ExtRefBindingInfo.from_ext_ref(ext_ref),
            source_info=source_info,
        ),
    )
    print(f"ExtRef {ext_ref.desc} source: {ext_ref.src_ld_inst}/{ext_ref.src_ln_class}.{ext_ref.src_cb_name}")
    if args.output:
        save_document(document, args.output, f"Set ExtRef {ext_ref.desc} control block")
    return 0


COMMANDS = {
    "auto-bind": run_auto_bind,
    "ldepf": run_ldepf,
    "binders": run_binders,
    "bind": run_bind,
    "source": run_source,
}


def add_holder_arguments(subparser):
    """持有 ExtRef 的节点位置"""
    subparser.add_argument("scd", help="Input SCD file")
    subparser.add_argument("--holder-ied", required=True, help="IED holding the ExtRef")
    subparser.add_argument("--holder-ld", required=True, help="LDevice inst holding the ExtRef")
    subparser.add_argument("--holder-ln", default="LLN0", help="LN class holding the ExtRef (default: LLN0)")
    subparser.add_argument("--holder-ln-inst", default=None, help="LN inst holding the ExtRef")
    subparser.add_argument("--holder-prefix", default=None, help="LN prefix holding the ExtRef")
    subparser.add_argument("--desc", required=True, help="ExtRef desc")
    subparser.add_argument("-o", "--output", help="Save the updated SCD file")


def main():
    """主入口"""
    parser = argparse.ArgumentParser(
        description="SCL ExtRef Binder - resolve and auto-wire ExtRef bindings of an SCD file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py auto-bind station.scd -o bound.scd
  python main.py ldepf station.scd --settings config/ldepf_settings.yaml -o bound.scd
  python main.py binders station.scd --ied IED_NAME2 --p-do Str --p-da general
  python main.py bind station.scd --holder-ied IED1 --holder-ld LD1 --desc SIG --ied IED2 -o bound.scd
  python main.py source station.scd --holder-ied IED1 --holder-ld LD1 --desc SIG --src-ld LD2 --cb CB
        """
    )

    # 日志选项
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Log level (default: INFO)"
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Log file name under logs/ (default: no log file)"
    )

    # 版本
    parser.add_argument(
        "--version", "-v",
        action="version",
        version="SCL ExtRef Binder v1.0.0"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    auto_bind = subparsers.add_parser("auto-bind", help="Bind ExtRef iedName from ICDSystemVersionUUID")
    auto_bind.add_argument("scd", help="Input SCD file")
    auto_bind.add_argument("-o", "--output", help="Save the updated SCD file")

    ldepf = subparsers.add_parser("ldepf", help="Bind LDEPF ExtRefs from a settings table")
    ldepf.add_argument("scd", help="Input SCD file")
    ldepf.add_argument("--settings", required=True, help="LDEPF settings YAML file")
    ldepf.add_argument("-o", "--output", help="Save the updated SCD file")

    binders = subparsers.add_parser("binders", help="List binding candidates for a signal")
    binders.add_argument("scd", help="Input SCD file")
    binders.add_argument("--ied", required=True, help="Source IED name")
    binders.add_argument("--ld", default=None, help="Source LDevice inst (default: all)")
    binders.add_argument("--p-do", required=True, help="DO path, e.g. Str or A.phsA")
    binders.add_argument("--p-da", default=None, help="DA path, e.g. general")
    binders.add_argument("--p-ln", default=None, help="LN class filter")

    bind = subparsers.add_parser("bind", help="Bind one ExtRef to its single candidate in a source IED")
    add_holder_arguments(bind)
    bind.add_argument("--ied", required=True, help="Source IED name")
    bind.add_argument("--ld", default=None, help="Source LDevice inst (default: all)")

    source = subparsers.add_parser("source", help="Set the source control block of a bound ExtRef")
    add_holder_arguments(source)
    source.add_argument("--src-ld", required=True, help="Source LDevice inst of the control block")
    source.add_argument("--src-ln", default="LLN0", help="Source LN class of the control block (default: LLN0)")
    source.add_argument("--src-ln-inst", default=None, help="Source LN inst")
    source.add_argument("--src-prefix", default=None, help="Source LN prefix")
    source.add_argument("--cb", required=True, help="Control block name")

    args = parser.parse_args()

    # 设置日志
    setup_logging(args.log_file, args.log_level)

    # 运行
    try:
        document = SCDParser().parse(args.scd)
        return COMMANDS[args.command](document, args)
    except ScdException as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
