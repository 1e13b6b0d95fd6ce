"""
描述符往返检查：读取 JSON/YAML 表格描述，重建表格后再序列化，比较两次输出是否一致。

用法：
    python tools/descriptor_roundtrip.py --input table.yaml
    python tools/descriptor_roundtrip.py --input table.json --no-content --print
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path

import yaml

from tablify.config import reload_config
from tablify.core import Grid
from tablify.interfaces import TablifyError
from tablify.logging_config import setup_logging


def load_descriptor(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in (".yaml", ".yml"):
        return yaml.safe_load(text) or {}
    return json.loads(text)


def main() -> int:
    parser = argparse.ArgumentParser(description="Check Grid descriptor round trip.")
    parser.add_argument("--input", required=True, help="描述文件（.json/.yaml）")
    parser.add_argument("--config", default="config/tablify.yaml", help="运行期配置")
    parser.add_argument("--no-content", action="store_true", help="只比较结构（不含单元格内容）")
    parser.add_argument("--print", dest="print_output", action="store_true", help="打印重建后的描述")
    args = parser.parse_args()

    config = reload_config(args.config)
    setup_logging(config.logging)
    include_content = not args.no_content

    try:
        grid = Grid(load_descriptor(Path(args.input)), config=config)
        first = grid.serialize(include_content)
        second = Grid(first, config=config).serialize(include_content)
    except TablifyError as exc:
        print(f"ERROR {type(exc).__name__}: {exc}")
        return 1

    if args.print_output:
        print(json.dumps(first, ensure_ascii=False, indent=2))

    print(f"rows={grid.get_row_count()} columns={grid.get_column_count()}")
    if first != second:
        print("RESULT=MISMATCH")
        return 2
    print("RESULT=OK")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
