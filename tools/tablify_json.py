"""
JSON 转表格描述：把任意 JSON 文档用 tablify() 转成表格，输出表格描述（JSON 或 YAML）。
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

import yaml

from tablify.config import reload_config
from tablify.core import tablify
from tablify.interfaces import TablifyError


def main() -> int:
    ap = argparse.ArgumentParser(description="Convert a JSON document into a Grid descriptor.")
    ap.add_argument("--input", required=True, help="JSON 文件")
    ap.add_argument("--output", default="", help="输出文件（缺省打印到标准输出）")
    ap.add_argument("--format", choices=("json", "yaml"), default="json")
    ap.add_argument("--config", default="config/tablify.yaml")
    args = ap.parse_args()

    data = json.loads(Path(args.input).read_text(encoding="utf-8"))
    try:
        grid = tablify(data, config=reload_config(args.config))
    except TablifyError as exc:
        print(f"ERROR {type(exc).__name__}: {exc}")
        return 1
    descriptor = grid.serialize(True)

    if args.format == "yaml":
        text = yaml.safe_dump(descriptor, allow_unicode=True, sort_keys=False)
    else:
        text = json.dumps(descriptor, ensure_ascii=False, indent=2)

    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
        print(f"written: {args.output}")
    else:
        sys.stdout.write(text + "\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
