# grouping/result.py
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .model import DataIntegrityError

# Claves conocidas con las que el confirmador recupera el resultado
GROUP_NAMES_KEY = "minimumGroupSet"
GROUP_POSITIONS_KEY = "minimumGroupSetValues"
SCORE_KEY = "score"


@dataclass
class GroupingResult:
    score: int
    groups: List[List[str]]       # nombres, por grupo
    positions: List[List[int]]    # posiciones paralelas a groups
    warnings: List[str] = field(default_factory=list)
    trials: int = 0

    @property
    def is_empty(self) -> bool:
        return not any(self.groups)

    def to_dict(self) -> Dict[str, Any]:
        return {
            GROUP_NAMES_KEY: self.groups,
            GROUP_POSITIONS_KEY: self.positions,
            SCORE_KEY: self.score,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GroupingResult":
        for key in (GROUP_NAMES_KEY, GROUP_POSITIONS_KEY):
            if key not in data:
                raise DataIntegrityError(f"Falta '{key}' en GroupingResult.from_dict()")
        groups = [[str(n) for n in g] for g in data[GROUP_NAMES_KEY]]
        positions = [[int(p) for p in g] for g in data[GROUP_POSITIONS_KEY]]
        if [len(g) for g in groups] != [len(g) for g in positions]:
            raise DataIntegrityError("Nombres y posiciones no son paralelos en GroupingResult.from_dict()")
        return cls(score=int(data.get(SCORE_KEY, 0)), groups=groups, positions=positions)


class ResultCache:
    """
    Almacén clave-valor en un archivo JSON. Cada escritura sobrescribe; no
    hay bloqueo, así que una segunda corrida reemplaza el resultado pendiente.
    """

    def __init__(self, path: str):
        self.path = Path(path)

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        text = self.path.read_text(encoding="utf-8")
        return json.loads(text) if text.strip() else {}

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")

    def put(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def get(self, key: str, default: Any = None) -> Any:
        return self._read().get(key, default)

    def pop(self, key: str, default: Any = None) -> Any:
        data = self._read()
        value = data.pop(key, default)
        self._write(data)
        return value

    def store_result(self, result: GroupingResult, extra: Optional[Dict[str, Any]] = None) -> None:
        data = self._read()
        data.update(result.to_dict())
        data.update(extra or {})
        self._write(data)

    def peek_result(self) -> GroupingResult:
        """Devuelve el resultado pendiente sin retirarlo del caché."""
        data = self._read()
        if GROUP_NAMES_KEY not in data:
            raise DataIntegrityError(f"No hay grupos pendientes en {self.path} (ResultCache.peek_result)")
        return GroupingResult.from_dict(data)

    def discard_result(self) -> None:
        for key in (GROUP_NAMES_KEY, GROUP_POSITIONS_KEY, SCORE_KEY):
            self.pop(key)

    def take_result(self) -> GroupingResult:
        """Devuelve el resultado pendiente y lo retira del caché."""
        result = self.peek_result()
        self.discard_result()
        return result


def format_notification(class_name: str, result: GroupingResult) -> str:
    body = f"Next {class_name} groups:\n"
    for number, group in enumerate(result.groups, start=1):
        body += f"Group #{number}\n"
        for name in group:
            body += f"\t{name}\n"
        body += "\n"
    return body
