"""Exportación JSON del resumen de ejecución.

Permite a scripts/CI leer qué etapas pasaron sin parsear la salida de la consola.
"""

from __future__ import annotations

import json
from pathlib import Path

from core.domain.models import SetupReport


def export_report_json(*, report: SetupReport, output_path: Path) -> Path:
    """Exporta `SetupReport` a JSON UTF-8 con formato estable."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = report.model_dump(mode="json")
    payload["exit_code"] = report.exit_code
    output_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    return output_path
