# grouping/scoring.py
from dataclasses import dataclass
from typing import List

from .model import Group, GroupSet
from .relationships import RelationshipMatrix


@dataclass
class ScoreBreakdown:
    total: int
    per_group: List[int]


def group_score(group: Group, matrix: RelationshipMatrix) -> int:
    # Grupos de 0 o 1 estudiantes no tienen pares
    return matrix.pair_total(group.positions())


def score_breakdown(group_set: GroupSet, matrix: RelationshipMatrix) -> ScoreBreakdown:
    per_group = [group_score(g, matrix) for g in group_set.groups]
    return ScoreBreakdown(total=sum(per_group), per_group=per_group)


def score_partition(group_set: GroupSet, matrix: RelationshipMatrix) -> int:
    """
    Suma, por grupo, los puntajes de cada par no ordenado de estudiantes.
    Se indexa por la posición global de cada estudiante, no por su orden
    dentro del grupo.
    """
    return score_breakdown(group_set, matrix).total
