# grouping/relationships.py
import math
import numbers
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .model import DataIntegrityError
from .registry import StudentRegistry


@dataclass(frozen=True)
class RosterRow:
    label: Any
    cells: List[Tuple[Any, Any]]  # (estudiante de la columna, puntaje)


def _is_missing(value: Any) -> bool:
    if value is None or value is pd.NA:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return False


def coerce_score(value: Any, where: str = "") -> int:
    """
    Convierte una celda a puntaje entero no negativo.
    Una celda en blanco ("") vale 0, igual que una celda vacía de la hoja.
    """
    if _is_missing(value):
        raise DataIntegrityError(f"Falta el puntaje {where}".rstrip())
    if isinstance(value, bool):
        raise DataIntegrityError(f"Puntaje no numérico {value!r} {where}".rstrip())

    if isinstance(value, numbers.Number):
        number = float(value)
    else:
        text = str(value).strip()
        if text == "":
            return 0
        try:
            number = float(text)
        except ValueError:
            raise DataIntegrityError(f"Puntaje no numérico {value!r} {where}".rstrip()) from None

    if math.isnan(number) or not number.is_integer():
        raise DataIntegrityError(f"Puntaje no entero {value!r} {where}".rstrip())
    if number < 0:
        raise DataIntegrityError(f"Puntaje negativo {value!r} {where}".rstrip())
    return int(number)


class RelationshipMatrix:
    """
    Puntajes por par de estudiantes. Solo se guardan las celdas i < j de
    una matriz cuadrada; el puntaje vale para el par no ordenado {i, j}.
    """

    def __init__(self, size: int):
        self._scores = np.zeros((size, size), dtype=np.int64)
        self._known = np.zeros((size, size), dtype=bool)

    @property
    def size(self) -> int:
        return self._scores.shape[0]

    def set(self, a: int, b: int, value: int) -> None:
        i, j = min(a, b), max(a, b)
        if i == j:
            raise ValueError(f"No hay puntaje para un estudiante consigo mismo (posición {i})")
        self._scores[i, j] = value
        self._known[i, j] = True

    def score(self, a: int, b: int) -> int:
        if a == b:
            return 0
        return int(self._scores[min(a, b), max(a, b)])

    def missing_pairs(self) -> List[Tuple[int, int]]:
        upper = np.triu(np.ones_like(self._known), k=1)
        rows, cols = np.nonzero(upper & ~self._known)
        return list(zip(rows.tolist(), cols.tolist()))

    @property
    def is_complete(self) -> bool:
        return not self.missing_pairs()

    def pair_total(self, positions: Sequence[int]) -> int:
        # Solo el triángulo superior tiene valores, así que cada par se cuenta una vez
        if len(positions) < 2:
            return 0
        idx = np.asarray(positions, dtype=np.intp)
        return int(self._scores[np.ix_(idx, idx)].sum())


def build_relationships(
    rows: Iterable[RosterRow],
    registry: Optional[StudentRegistry] = None,
) -> Tuple[StudentRegistry, RelationshipMatrix]:
    """
    Recorre el roster en orden. Por cada fila resuelve al estudiante de la
    fila y a los de las columnas; solo las celdas cuyo estudiante de columna
    queda después de la diagonal son puntajes. Sirve tanto para la grilla
    completa como para filas que traen únicamente las columnas posteriores.
    """
    registry = registry or StudentRegistry()
    rows = list(rows)
    found: Dict[Tuple[int, int], int] = {}

    for r, row in enumerate(rows):
        if _is_missing(row.label) or not str(row.label).strip():
            raise DataIntegrityError(
                f"No se encontró el estudiante de la fila {r + 1} en build_relationships()"
            )
        s1 = registry.resolve(row.label)
        for col_label, value in row.cells:
            if _is_missing(col_label) or not str(col_label).strip():
                raise DataIntegrityError(
                    f"Columna sin estudiante en la fila de {s1.name!r} en build_relationships()"
                )
            s2 = registry.resolve(col_label)
            if s2.position <= s1.position:
                continue
            found[(s1.position, s2.position)] = coerce_score(
                value, where=f"para ({s1.name!r}, {s2.name!r}) en build_relationships()"
            )

    matrix = RelationshipMatrix(len(registry))
    for (i, j), value in found.items():
        matrix.set(i, j, value)

    missing = matrix.missing_pairs()
    if missing:
        names = registry.names()
        i, j = missing[0]
        raise DataIntegrityError(
            f"Falta el puntaje para ({names[i]!r}, {names[j]!r}) en build_relationships()"
            f" ({len(missing)} pares sin puntaje)"
        )
    return registry, matrix
