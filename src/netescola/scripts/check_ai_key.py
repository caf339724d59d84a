"""Check that a Gemini API key answers on at least one model and API version.

Exit codes: 0 when some model responded, 2 when none did, 1 when no key is set.
"""

import argparse
import os
import sys
from typing import Callable, List, Optional

from rich.console import Console

from netescola.services.ai_client import Credential, default_client_factory
from netescola.utils.config import DEFAULT_GEMINI_API_VERSIONS, DEFAULT_GEMINI_MODELS

PROBE_PROMPT = "Responda com a palavra OK se você estiver funcionando."

# Older models are still worth probing for keys created long ago
EXTRA_MODELS = ['gemini-1.0-pro', 'gemini-pro']


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Test a Gemini API key against known models.")
    parser.add_argument(
        "--key",
        help="API key to test (defaults to GEMINI_API_KEY, then GEMINI_API_KEY_BACKUP).",
    )
    parser.add_argument(
        "--model",
        action="append",
        dest="models",
        help="Model to try; repeat to try several (defaults to the built-in list).",
    )
    return parser.parse_args(argv)


def try_model(
    api_key: str,
    model: str,
    console: Console,
    versions: List[str] = DEFAULT_GEMINI_API_VERSIONS,
    client_factory: Callable[[Credential], object] = default_client_factory,
) -> bool:
    for version in versions:
        credential = Credential(api_key=api_key, api_version=version, label="cli")
        try:
            client = client_factory(credential)
            response = client.models.generate_content(model=model, contents=PROBE_PROMPT)
            console.print(f"[green]✅ Modelo {model} respondeu usando {version}:[/green] {(response.text or '').strip()}")
            return True
        except Exception as e:
            console.print(f"[red]❌ Falha no modelo {model} ({version}): {e}[/red]")
            code = getattr(e, 'code', None)
            if code:
                console.print(f"   ↳ Código HTTP detectado: {code}")
    return False


def check_key(
    api_key: Optional[str],
    models: List[str],
    console: Console,
    client_factory: Callable[[Credential], object] = default_client_factory,
) -> int:
    if not api_key:
        console.print("[red]No Gemini API key provided. Set GEMINI_API_KEY or pass --key.[/red]")
        return 1

    console.print("Testando chave do Gemini...")
    for model in models:
        if try_model(api_key, model, console, client_factory=client_factory):
            console.print("[green]✅ Pelo menos um modelo respondeu com sucesso.[/green]")
            return 0

    console.print("[red]❌ Nenhum modelo respondeu com sucesso usando a chave informada.[/red]")
    return 2


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    api_key = args.key or os.getenv('GEMINI_API_KEY') or os.getenv('GEMINI_API_KEY_BACKUP')
    models = args.models or DEFAULT_GEMINI_MODELS + EXTRA_MODELS
    sys.exit(check_key(api_key, models, Console()))


if __name__ == "__main__":
    main()
