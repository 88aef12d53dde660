#!/usr/bin/env python3
"""
初始化数据库: 创建 sets / cards / prices / rates / collection 等表
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from loguru import logger
from app import create_app, db


def init_database(config_name=None):
    app = create_app(config_name)
    with app.app_context():
        db.create_all()
        tables = sorted(db.metadata.tables)
    logger.info(f"数据库表已就绪 ({len(tables)}): {', '.join(tables)}")
    return app


if __name__ == '__main__':
    init_database(sys.argv[1] if len(sys.argv) > 1 else None)
