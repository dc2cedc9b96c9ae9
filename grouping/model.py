# grouping/model.py
import random
from dataclasses import dataclass, field
from typing import List, Optional


class DataIntegrityError(ValueError):
    """Falta una celda del roster, un puntaje o un valor de configuración."""


@dataclass(eq=False)
class Student:
    # La identidad es el nombre; position es el índice en la matriz de relaciones
    name: str
    position: int


@dataclass(eq=False)
class Group:
    capacity: int
    members: List[Student] = field(default_factory=list)

    @property
    def remaining(self) -> int:
        return self.capacity - len(self.members)

    @property
    def is_full(self) -> bool:
        return self.remaining <= 0

    def add_if_possible(self, student: Student) -> bool:
        if self.is_full:
            return False
        self.members.append(student)
        return True

    def contains(self, student: Student) -> bool:
        return any(s is student for s in self.members)

    def positions(self) -> List[int]:
        return [s.position for s in self.members]


def group_capacities(total_students: int, group_count: int) -> List[int]:
    """
    Tamaños de grupo de izquierda a derecha: para el grupo i se toma
    floor(restantes / (grupos - i)) y se suma uno si queda resto.
    Consume exactamente a todos los estudiantes y la diferencia entre
    dos grupos cualesquiera es a lo sumo 1.
    """
    if group_count < 1:
        raise ValueError(f"group_count debe ser >= 1 (recibido {group_count})")
    if total_students < 0:
        raise ValueError(f"total_students no puede ser negativo (recibido {total_students})")

    sizes: List[int] = []
    remaining = total_students
    for i in range(group_count):
        left = group_count - i
        size = remaining // left
        if remaining % left > 0:
            size += 1
        sizes.append(size)
        remaining -= size
    return sizes


class GroupSet:
    """Una partición candidata: grupos con capacidad fija y su puntaje."""

    def __init__(self, total_students: int, group_count: int, rng: Optional[random.Random] = None):
        self.groups: List[Group] = [Group(c) for c in group_capacities(total_students, group_count)]
        self.score: int = 0
        self._rng = rng or random.Random()
        # Índices de grupos que aún tienen cupo
        self._open: List[int] = [i for i, g in enumerate(self.groups) if not g.is_full]

    def add_to_random_group(self, student: Student) -> "GroupSet":
        """
        Asigna el estudiante a un grupo elegido uniformemente entre los que
        aún tienen cupo. Equivale a reintentar grupos al azar hasta que uno
        lo acepte, pero siempre termina en una sola elección.
        """
        if not self._open:
            raise ValueError(f"La partición ya está completa; no se puede agregar a {student.name!r}")
        slot = self._rng.randrange(len(self._open))
        group = self.groups[self._open[slot]]
        group.add_if_possible(student)
        if group.is_full:
            # swap-remove: O(1)
            self._open[slot] = self._open[-1]
            self._open.pop()
        return self

    @property
    def is_complete(self) -> bool:
        return not self._open

    @property
    def has_empty_groups(self) -> bool:
        return any(g.capacity == 0 for g in self.groups)

    def sizes(self) -> List[int]:
        return [len(g.members) for g in self.groups]

    def capacities(self) -> List[int]:
        return [g.capacity for g in self.groups]

    def to_name_arrays(self) -> List[List[str]]:
        return [[s.name for s in g.members] for g in self.groups]

    def to_position_arrays(self) -> List[List[int]]:
        return [g.positions() for g in self.groups]
