#!/usr/bin/env python3
"""
Lumidex 统一 CLI 工具

用法:
    python cli.py init-db                     # 创建数据库表
    python cli.py ingest --sets               # 导入全部系列
    python cli.py ingest --cards --set sv8pt5 # 导入指定系列的卡片与价格
    python cli.py ingest --prices             # 更新已有卡片的价格
    python cli.py rates --update              # 更新汇率
    python cli.py rates --health              # 汇率健康检查
"""
import sys
import os
import argparse

# 设置路径
script_dir = os.path.dirname(os.path.abspath(__file__))
project_dir = os.path.dirname(script_dir)
sys.path.insert(0, project_dir)

from loguru import logger


def cmd_init_db(args):
    """创建数据库表"""
    from init_db import init_database
    init_database(args.config)


def cmd_ingest(args):
    """从 Pokémon TCG API 导入数据"""
    from app import create_app
    from scrapers.pokemon_tcg import ingest_sets, ingest_cards, ingest_prices

    app = create_app(args.config)

    if args.sets:
        ingest_sets(app)
    elif args.cards:
        ingest_cards(app, set_id=args.set)
    elif args.prices:
        ingest_prices(app, set_id=args.set)
    else:
        print("请指定 --sets, --cards 或 --prices")
        return 1
    return 0


def cmd_rates(args):
    """汇率管理"""
    from app import create_app
    from app.currency.rates import ExchangeRateService

    app = create_app(args.config)

    with app.app_context():
        service = ExchangeRateService()
        if args.update:
            result = service.run_update_job()
            print(f"更新 {result['updatedRates']} 条汇率, 耗时 {result['duration']}ms")
            for error in result['errors']:
                print(f"  ❌ {error}")
            return 0 if result['success'] else 1
        if args.health:
            health = service.health_check()
            print(f"API: {'✅' if health['apiStatus']['healthy'] else '❌'}")
            print(f"数据库: {'✅' if health['databaseStatus']['healthy'] else '❌'}")
            print(f"最新汇率: {health['latestRates']['count']} 条 ({health['latestRates']['lastUpdated']})")
            return 0 if health['healthy'] else 1

    print("请指定 --update 或 --health")
    return 1


def build_parser():
    parser = argparse.ArgumentParser(
        description='Lumidex 管理工具',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('--config', type=str, default=None,
                        help='配置名: development / production / testing')
    subparsers = parser.add_subparsers(dest='command', help='子命令')

    # init-db 子命令
    init_parser = subparsers.add_parser('init-db', help='创建数据库表')
    init_parser.set_defaults(func=cmd_init_db)

    # ingest 子命令
    ingest_parser = subparsers.add_parser('ingest', help='导入系列/卡片/价格')
    group = ingest_parser.add_mutually_exclusive_group()
    group.add_argument('--sets', action='store_true', help='导入全部系列')
    group.add_argument('--cards', action='store_true', help='导入卡片 (含价格)')
    group.add_argument('--prices', action='store_true', help='只更新价格')
    ingest_parser.add_argument('--set', type=str, help='指定系列ID')
    ingest_parser.set_defaults(func=cmd_ingest)

    # rates 子命令
    rates_parser = subparsers.add_parser('rates', help='汇率管理')
    rates_parser.add_argument('--update', action='store_true', help='更新汇率')
    rates_parser.add_argument('--health', action='store_true', help='健康检查')
    rates_parser.set_defaults(func=cmd_rates)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    try:
        return args.func(args) or 0
    except Exception:
        logger.exception(f"命令 {args.command} 执行失败")
        return 1


if __name__ == '__main__':
    sys.exit(main())
