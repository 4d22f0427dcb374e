from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys

from imgtmpl_core.core import RenderSettings, TemplateLoadError, TemplateRenderError, enable_verbose_logging
from imgtmpl_core.render import to_image
from imgtmpl_ui import RenderContext, load_template_file

LOGGER = logging.getLogger("imgtmpl")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="imgtmpl")
    sub = parser.add_subparsers(dest="command", required=True)

    render = sub.add_parser("render", help="Render a template with a parameter file to PNG.")
    render.add_argument("--tmpl", type=Path, default=Path("tmpl.json"), help="Template JSON file or .zip bundle.")
    render.add_argument("--param", type=Path, default=None, help="JSON object of string parameters.")
    render.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Extra parameter; repeatable, applied after --param.",
    )
    render.add_argument("--out", type=Path, default=Path("out.png"))
    render.add_argument("--font-dir", type=Path, default=None, help="Directory holding <name>.ttf files.")
    render.add_argument("--image-cache-dir", type=Path, default=None)
    render.add_argument("--cache-size", type=int, default=None, help="Max remote images kept in memory.")
    render.add_argument("--save-local", action="store_true", help="Persist fetched images to the cache dir.")
    render.add_argument("--verbose", action="store_true")

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.command == "render":
        return _render(args)
    return 2


def _render(args: argparse.Namespace) -> int:
    try:
        settings = _settings_from_args(args)
        params = _load_params(args.param, args.overrides)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    if settings.verbose:
        enable_verbose_logging()

    ctx = RenderContext.from_settings(settings)
    try:
        template = load_template_file(args.tmpl, ctx=ctx)
    except TemplateLoadError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    LOGGER.info("template loaded: %s", args.tmpl)

    try:
        canvas = template.render(params, ctx=ctx)
    except TemplateRenderError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    args.out.parent.mkdir(parents=True, exist_ok=True)
    to_image(canvas).save(args.out, format="PNG")
    LOGGER.info("rendered %dx%d -> %s", template.width, template.height, args.out)
    return 0


def _settings_from_args(args: argparse.Namespace) -> RenderSettings:
    base = RenderSettings.from_env()
    return RenderSettings(
        image_cache_dir=args.image_cache_dir or base.image_cache_dir,
        image_cache_size=args.cache_size if args.cache_size is not None else base.image_cache_size,
        image_cache_save_local=args.save_local or base.image_cache_save_local,
        font_dir=args.font_dir or base.font_dir,
        verbose=args.verbose or base.verbose,
    )


def _load_params(path: Path | None, overrides: list[str]) -> dict[str, str]:
    params: dict[str, str] = {}
    if path is not None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ValueError(f"cannot read parameters from {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ValueError(f"parameters in {path} must be a JSON object")
        params.update({str(k): str(v) for k, v in data.items()})
    for item in overrides:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise ValueError(f"--set expects KEY=VALUE, got {item!r}")
        params[key] = value
    return params


if __name__ == "__main__":
    raise SystemExit(main())
