# grouping/registry.py
from typing import Dict, Iterator, List

from .model import DataIntegrityError, Student


class StudentRegistry:
    """
    Deduplica los nombres encontrados al recorrer el roster. Cada nombre
    nuevo recibe la siguiente posición libre (0, 1, 2...). Vive lo que
    dura una corrida; no hay operación de borrado.
    """

    def __init__(self):
        self._students: List[Student] = []
        self._by_name: Dict[str, Student] = {}

    def resolve(self, name: str) -> Student:
        if name is None or not str(name).strip():
            raise DataIntegrityError("Nombre de estudiante vacío en StudentRegistry.resolve()")
        key = str(name).strip()
        student = self._by_name.get(key)
        if student is None:
            student = Student(name=key, position=len(self._students))
            self._students.append(student)
            self._by_name[key] = student
        return student

    def names(self) -> List[str]:
        return [s.name for s in self._students]

    def __len__(self) -> int:
        return len(self._students)

    def __iter__(self) -> Iterator[Student]:
        return iter(list(self._students))
