"""
Configuración de la formación de grupos.

Los parámetros se cargan desde YAML para que cada corrida sea
configurable sin tocar el código.
"""
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


@dataclass
class GroupingConfig:
    # Búsqueda
    num_groups: int = 5
    attempted_depth: int = 1000
    seed: Optional[int] = None  # None = fuente aleatoria sin semilla
    log_interval: int = 100

    # Hoja de configuración ("Student Groups")
    class_name: str = ""
    settings_path: str = "data/student_groups.csv"
    spreadsheet_column: str = "Spreadsheet"
    sheet_name_column: str = "Sheet Name"

    # Caché entre calcular y aceptar
    cache_path: str = "outputs/pending_groups.json"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GroupingConfig":
        merged = asdict(cls())
        for k, v in data.items():
            if k in merged:
                merged[k] = v
        return cls(**merged)

    def validate(self) -> "GroupingConfig":
        # YAML puede traer números entre comillas
        self.num_groups = int(self.num_groups)
        self.attempted_depth = int(self.attempted_depth)
        self.log_interval = int(self.log_interval)
        if self.seed is not None:
            self.seed = int(self.seed)
        if self.num_groups < 1:
            raise ValueError(f"num_groups debe ser >= 1 (recibido {self.num_groups})")
        if self.attempted_depth < 1:
            raise ValueError(f"attempted_depth debe ser >= 1 (recibido {self.attempted_depth})")
        return self


def load_config(path: str = "config.yaml") -> GroupingConfig:
    cfg_path = Path(path)
    if not cfg_path.exists():
        return GroupingConfig()
    data = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} debe contener un objeto mapeo")
    return GroupingConfig.from_dict(data)
