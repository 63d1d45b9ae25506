#!/usr/bin/env python
"""
招聘线索管理后端启动脚本

用法:
    python run.py                    # 默认启动 (127.0.0.1:5000)
    python run.py -p 8080            # 指定端口
    python run.py --host 0.0.0.0     # 允许外网访问
    python run.py --reload           # 开启热重载
"""
import argparse
import os
import shutil
import sys
from pathlib import Path

# 确保项目根目录在 Python 路径中
ROOT_DIR = Path(__file__).parent
sys.path.insert(0, str(ROOT_DIR))


def parse_args():
    """解析命令行参数"""
    parser = argparse.ArgumentParser(
        description="招聘线索管理后端启动脚本",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-p", "--port",
        type=int,
        default=int(os.environ.get("PORT", 5000)),
        help="服务端口 (默认: 环境变量 PORT 或 5000)"
    )
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="服务地址 (默认: 127.0.0.1)"
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="开启热重载 (开发模式)"
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="工作进程数 (默认: 1，限流计数按进程独立)"
    )
    return parser.parse_args()


def prepare_env():
    """准备 .env 和 SQLite 数据目录"""
    env_file = ROOT_DIR / ".env"
    env_example = ROOT_DIR / ".env.example"

    if not env_file.exists() and env_example.exists():
        shutil.copy(env_example, env_file)
        print("⚠️  未找到 .env，已从 .env.example 创建，请修改 JWT_SECRET 等配置")

    (ROOT_DIR / "data").mkdir(parents=True, exist_ok=True)


def main():
    args = parse_args()
    prepare_env()

    from app.core.config import settings

    print("=" * 50)
    print(f"  {settings.app_name}")
    print("=" * 50)
    print(f"   地址: http://{args.host}:{args.port}")
    print(f"   环境: {settings.app_env}")
    if settings.debug:
        print(f"   文档: http://{args.host}:{args.port}/docs")
    print(f"   热重载: {'开启' if args.reload else '关闭'}")
    print("-" * 50)

    import uvicorn
    try:
        uvicorn.run(
            "app.main:app",
            host=args.host,
            port=args.port,
            reload=args.reload,
            workers=args.workers if not args.reload else 1,
            log_level="info",
        )
    except KeyboardInterrupt:
        print("\n👋 服务已停止")


if __name__ == "__main__":
    main()
