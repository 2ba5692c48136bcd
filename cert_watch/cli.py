"""
命令行入口：每次运行执行一次巡检
"""

import argparse
import sys
from importlib import metadata
from typing import List, Optional

from .services.cert_prober import CertificateProber
from .services.config_loader import (
    DEFAULT_CONFIG_PATH,
    EXAMPLE_CONFIG_NAME,
    ConfigLoader,
    generate_default_config,
)
from .services.error_handler import ConfigError
from .services.group_evaluator import GroupEvaluator
from .services.logger import LoggerService

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_DELIVERY_FAILED = 2


def create_parser() -> argparse.ArgumentParser:
    """创建命令行参数解析器"""
    parser = argparse.ArgumentParser(
        prog="cert-watch",
        description="检查配置中各监控组站点的TLS证书过期时间，每个监控组发送一条通知",
        epilog="由 cron 或 systemd timer 定时调用，每次运行只巡检一次",
    )

    parser.add_argument(
        "-c",
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"配置文件路径（默认: {DEFAULT_CONFIG_PATH}）",
    )

    parser.add_argument(
        "-g",
        "--generate",
        action="store_true",
        help=f"生成默认配置 ./{EXAMPLE_CONFIG_NAME} 后退出",
    )

    parser.add_argument(
        "--log-level",
        default=None,
        help="日志级别（默认读取 LOG_LEVEL，否则为 INFO）",
    )

    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="组内并发探测数（默认: 1，顺序探测）",
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=10.0,
        help="单个站点的连接超时时间，单位秒（默认: 10）",
    )

    parser.add_argument(
        "--strict",
        action="store_true",
        help=f"有通知发送失败时以 {EXIT_DELIVERY_FAILED} 退出",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_version()}",
    )

    return parser


def _version() -> str:
    try:
        return metadata.version("cert-watch")
    except metadata.PackageNotFoundError:
        return "unknown"


def _confirm(prompt: str) -> bool:
    answer = input(prompt).strip()
    return answer in ("y", "Y") or answer.lower() == "yes"


def handle_generate(path: str = EXAMPLE_CONFIG_NAME) -> int:
    """
    写出内置配置模板，文件已存在时询问是否覆盖

    Args:
        path: 输出文件路径

    Returns:
        int: 退出码
    """
    if generate_default_config(path):
        print(f"已生成 {path}")
        return EXIT_OK

    print(f"{path} 已存在")
    if _confirm("override? [y/n] "):
        generate_default_config(path, overwrite=True)
        print(f"已生成 {path}")
    return EXIT_OK


def run(args: argparse.Namespace) -> int:
    """
    加载配置并执行一次巡检

    Args:
        args: 命令行参数

    Returns:
        int: 退出码
    """
    logger_service = LoggerService(log_level=args.log_level)

    try:
        config = ConfigLoader().load(args.config)
    except ConfigError as exc:
        for error in exc.errors:
            logger_service.logger.error(error)
        return EXIT_CONFIG_ERROR

    logger_service.log_configuration_info({
        'config': args.config,
        'groups': len(config.groups),
        'workers': args.workers,
        'timeout': args.timeout,
        'log_level': logger_service.log_level,
    })

    evaluator = GroupEvaluator(
        prober=CertificateProber(timeout=args.timeout),
        logger_service=logger_service,
        workers=args.workers,
    )
    result = evaluator.run_sweep(config.groups)

    if args.strict and not result.all_delivered:
        return EXIT_DELIVERY_FAILED
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> None:
    """命令行主入口"""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.workers < 1:
        parser.error("--workers 不能小于 1")
    if args.timeout <= 0:
        parser.error("--timeout 必须大于 0")

    if args.generate:
        exit_code = handle_generate()
    else:
        exit_code = run(args)

    if exit_code != EXIT_OK:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
