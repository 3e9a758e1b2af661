"""CLI утилита (вопрос ассистенту из терминала, проверка настройки)."""

import argparse
import json
import sys
from pathlib import Path

from pydantic import ValidationError

from fin_assistant.infrastructure.logging import configure_logging
from fin_assistant.providers.factory import SettingsConfigProvider
from fin_assistant.services.context import FinancialContext
from fin_assistant.services.gateway import build_gateway
from fin_assistant.services.insights import generate_insights


def _load_context(path: str | None) -> FinancialContext | None:
    if not path:
        return None
    text = Path(path).read_text(encoding="utf-8")
    return FinancialContext.model_validate_json(text)


def cmd_ask(args: argparse.Namespace) -> int:
    """Отправляет вопрос через gateway; код 1, если в результате есть `error`."""
    try:
        context = _load_context(args.context)
    except (OSError, ValidationError) as e:
        print(f"Не удалось прочитать контекст: {e}", file=sys.stderr)
        return 2

    result = build_gateway().complete(args.prompt, context=context, system_prompt=args.system_prompt)
    if args.json:
        print(json.dumps(result.as_dict(), ensure_ascii=False))
    else:
        print(result.content)
        if result.error:
            print(f"error: {result.error}", file=sys.stderr)
    return 0 if result.ok else 1


def cmd_insights(args: argparse.Namespace) -> int:
    """Печатает инсайты по контексту (JSON); код 1, если AI не дал валидный ответ."""
    try:
        context = _load_context(args.context)
    except (OSError, ValidationError) as e:
        print(f"Не удалось прочитать контекст: {e}", file=sys.stderr)
        return 2

    result = generate_insights(build_gateway(), context)
    print(json.dumps(result.as_dict(), ensure_ascii=False, indent=2))
    return 0 if result.insights is not None else 1


def cmd_status(args: argparse.Namespace) -> int:
    """Печатает, настроен ли провайдер."""
    config = SettingsConfigProvider()
    configured = config.is_provider_configured()
    state = "configured" if configured else "not configured"
    print(f"provider={config.provider_name} {state}")
    return 0 if configured else 1


def main(argv: list[str] | None = None) -> int:
    """Точка входа CLI."""
    parser = argparse.ArgumentParser(prog="fin-assistant", description="Finance Assistant: CLI")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_ask = sub.add_parser("ask", help="Задать вопрос ассистенту")
    p_ask.add_argument("prompt", help="Вопрос")
    p_ask.add_argument("--context", default=None, help="JSON файл с финансовым контекстом")
    p_ask.add_argument("--system-prompt", default=None, help="Свой system prompt")
    p_ask.add_argument("--json", action="store_true", help="Печатать результат целиком (JSON)")
    p_ask.set_defaults(func=cmd_ask)

    p_ins = sub.add_parser("insights", help="Инсайты по финансовому контексту")
    p_ins.add_argument("--context", required=True, help="JSON файл с финансовым контекстом")
    p_ins.set_defaults(func=cmd_insights)

    p_status = sub.add_parser("status", help="Проверить настройку провайдера")
    p_status.set_defaults(func=cmd_status)

    args = parser.parse_args(argv)
    configure_logging()
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
