"""
命令行入口：导入商品表格、评分排行、批量生成中英文案并导出 Excel。
用法示例：
    python cli_app.py --input products.csv --top 5 --generate --out result.xlsx
"""
import argparse
import asyncio
import logging
import sys
import time

from shopscore.config import ROLE_ADMIN, ROLE_USER, load_settings
from shopscore.generation.client import MissingCredentialError
from shopscore.importer import FileImportError
from shopscore.service import AppSession


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="电商选品评分 & AI 批量文案生成")
    parser.add_argument("--input", required=True, help="商品数据文件 (.csv / .xlsx)")
    parser.add_argument("--out", default="", help="导出文件名或目录 (默认自动生成)")

    # 列映射覆盖
    parser.add_argument("--map-title", help="标题列名")
    parser.add_argument("--map-price", help="价格列名")
    parser.add_argument("--map-sales", help="销量列名")
    parser.add_argument("--map-image", help="图片列名")

    # 筛选条件
    parser.add_argument("--min-sales", type=float, default=None, help="最低销量 (默认 100)")
    parser.add_argument("--price-min", type=float, default=None, help="最低价格 (默认取导入数据最低价)")
    parser.add_argument("--price-max", type=float, default=None, help="最高价格 (默认取导入数据最高价)")

    # 批量生成
    parser.add_argument("--generate", action="store_true", help="对选中的商品批量生成文案")
    parser.add_argument("--top", type=int, default=5, help="选取评分排行前 N 个商品进入批量队列")
    parser.add_argument("--ids", nargs="*", default=None, help="直接指定商品 id 进入批量队列")
    parser.add_argument("--api-key", default="", help="普通用户的 API Key (会保存到本地)")
    parser.add_argument("--admin", action="store_true", help="以管理员身份使用系统 Key")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings()
    logging.basicConfig(level=settings.log_level, format="[%(asctime)s] %(levelname)s: %(message)s")

    session = AppSession(settings)
    session.login(ROLE_ADMIN if args.admin else ROLE_USER, args.api_key)
    start = time.time()

    # 1. 导入
    try:
        with open(args.input, "rb") as f:
            pending = session.begin_import(args.input, f.read())
    except (OSError, FileImportError) as e:
        print(f"读取文件失败: {e}")
        return 1
    if pending is None:
        print("文件中没有可用的商品数据。")
        return 1

    overrides = {
        "title": args.map_title, "price": args.map_price,
        "sales": args.map_sales, "image": args.map_image,
    }
    try:
        session.update_mapping(**{k: v for k, v in overrides.items() if v is not None})
    except ValueError as e:
        print(f"列映射错误: {e}")
        return 1

    m = pending.mapping
    print(f"列映射: 标题={m.title} | 价格={m.price} | 销量={m.sales} | 图片={m.image or '-'}")
    products = session.commit_import()
    print(f"成功导入 {len(products)} 个商品")

    # 2. 筛选 & 评分
    low, high = session.price_range
    session.price_range = (
        args.price_min if args.price_min is not None else low,
        args.price_max if args.price_max is not None else high,
    )
    if args.min_sales is not None:
        session.min_sales = args.min_sales

    ranked = session.ranked()
    print(f"筛选结果: {len(ranked)} 个商品 (价格 {session.price_range[0]}-{session.price_range[1]}, 销量 >= {session.min_sales})")
    for i, (product, score) in enumerate(ranked, start=1):
        print(f"{i:>3}. [{score.grade:<2}] {score.text}  {product.title}  价格={product.price:g} 销量={product.sales:g} GMV={product.gmv:,.0f}")
    print("统计:", session.report())

    # 3. 批量生成
    if args.generate:
        ids = args.ids if args.ids else [p.id for p, _ in ranked[:args.top]]
        for pid in ids:
            try:
                session.toggle_favorite(pid)
            except KeyError as e:
                print(f"跳过: {e}")

        pipeline = session.open_batch()
        print(f"开始批量生成: 队列 {len(pipeline.results())} 个商品")
        try:
            asyncio.run(pipeline.run_batch(
                progress_callback=lambda i, total, r: print(f"[{i + 1}/{total}] {r.status}: {r.product_name}")
            ))
        except MissingCredentialError as e:
            print(f"{e}，请通过 --api-key 提供或使用 --admin 并配置 SHOPSCORE_API_KEY")
            return 1
        except KeyboardInterrupt:
            pipeline.cancel()
            print("已中断，已完成的结果已保存，下次运行将继续。")
        print(f"已完成: {pipeline.completed_count}/{len(pipeline.results())}")

    # 4. 导出
    out_path = session.export_file(args.out)
    print(f"结果已导出至: {out_path}")
    print(f"总耗时: {time.time() - start:.2f} 秒")
    return 0


if __name__ == "__main__":
    sys.exit(main())
