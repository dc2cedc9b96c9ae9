# grouping/confirm.py
import logging
from typing import Callable, Mapping, Optional, Protocol

import pandas as pd

from .model import DataIntegrityError
from .relationships import coerce_score
from .result import GroupingResult, format_notification

logger = logging.getLogger(__name__)

Notifier = Callable[[str, str], None]  # (asunto, cuerpo)


class RelationshipSink(Protocol):
    def increment(self, first: int, second: int) -> None:
        ...


class TableSink:
    """
    Suma 1 en la celda del triángulo superior de la tabla de relaciones:
    fila = estudiante con menor posición, columna = el de mayor posición.
    """

    def __init__(self, table: pd.DataFrame, labels: Mapping[int, str]):
        self.table = table
        self.labels = labels

    def increment(self, first: int, second: int) -> None:
        row, col = self.labels[first], self.labels[second]
        where = f"para ({row!r}, {col!r}) en TableSink.increment()"
        if row not in self.table.index or col not in self.table.columns:
            raise DataIntegrityError(f"No existe la celda {where}")
        current = coerce_score(self.table.at[row, col], where=where)
        self.table.at[row, col] = current + 1


def confirm(
    result: GroupingResult,
    sink: RelationshipSink,
    notifier: Optional[Notifier] = None,
    class_name: str = "",
) -> str:
    """
    Acepta la partición: incrementa en 1 el puntaje de cada par que quedó
    en el mismo grupo y arma el correo de aviso. No hay protección contra
    dobles llamadas; confirmar dos veces suma dos veces.
    """
    updated = 0
    for group in result.positions:
        for a in range(len(group)):
            for b in range(a + 1, len(group)):
                first, second = sorted((group[a], group[b]))
                sink.increment(first, second)
                updated += 1

    body = format_notification(class_name, result)
    if notifier is not None:
        notifier(f"{class_name} Groups", body)
    logger.info("Grupos confirmados: %d pares actualizados", updated)
    return body
