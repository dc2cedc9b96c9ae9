import logging
import random
from enum import Enum
from typing import Dict, Iterable, List, Optional

from .config import GroupingConfig
from .model import GroupSet
from .registry import StudentRegistry
from .relationships import RelationshipMatrix, RosterRow, build_relationships
from .result import GroupingResult
from .scoring import score_partition

logger = logging.getLogger(__name__)


class OptimizerState(Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    DONE = "done"


class GroupOptimizer:
    """
    Búsqueda por reinicios aleatorios: cada intento arma una partición
    nueva con grupos balanceados, la puntúa y se queda con la de menor
    puntaje. Una instancia corre una sola vez.
    """

    def __init__(self, registry: StudentRegistry, matrix: RelationshipMatrix, cfg: Optional[GroupingConfig] = None):
        self.registry = registry
        self.matrix = matrix
        self.cfg = (cfg or GroupingConfig()).validate()
        self.students = list(registry)
        self.rng = random.Random(self.cfg.seed)
        self.state = OptimizerState.IDLE
        self.history: List[Dict] = []
        self.warnings: List[str] = []
        self._best: Optional[GroupSet] = None

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    def _check_inputs(self) -> None:
        total = len(self.students)
        if total == 0:
            self._warn("No se encontraron estudiantes; se devuelve una partición vacía")
        elif self.cfg.num_groups > total:
            self._warn(
                f"num_groups={self.cfg.num_groups} supera a los {total} estudiantes; "
                f"{self.cfg.num_groups - total} grupos quedarán vacíos"
            )

    def build_trial(self) -> GroupSet:
        group_set = GroupSet(len(self.students), self.cfg.num_groups, rng=self.rng)
        for student in self.students:
            group_set.add_to_random_group(student)
        group_set.score = score_partition(group_set, self.matrix)
        return group_set

    def run(self) -> GroupingResult:
        if self.state is not OptimizerState.IDLE:
            raise RuntimeError(f"El optimizador ya fue ejecutado (estado {self.state.value})")
        self.state = OptimizerState.SEARCHING
        self._check_inputs()

        depth = int(self.cfg.attempted_depth)
        for trial in range(depth):
            candidate = self.build_trial()
            if self._best is None or candidate.score < self._best.score:
                self._best = candidate

            self.history.append({"trial": trial, "score": candidate.score, "best_score": self._best.score})
            if self.cfg.log_interval and (trial % self.cfg.log_interval == 0 or trial == depth - 1):
                logger.debug("Intento %d: puntaje=%d mejor=%d", trial, candidate.score, self._best.score)

        self.state = OptimizerState.DONE
        logger.info(
            "Búsqueda terminada: %d intentos, %d estudiantes, %d grupos, mejor puntaje=%d",
            depth, len(self.students), self.cfg.num_groups, self._best.score,
        )
        return self.result()

    def _require_done(self) -> None:
        if self.state is not OptimizerState.DONE:
            raise RuntimeError(f"La búsqueda no ha terminado (estado {self.state.value})")

    @property
    def best(self) -> GroupSet:
        self._require_done()
        return self._best

    @property
    def best_score(self) -> int:
        self._require_done()
        return self._best.score

    def result(self) -> GroupingResult:
        self._require_done()
        return GroupingResult(
            score=self._best.score,
            groups=self._best.to_name_arrays(),
            positions=self._best.to_position_arrays(),
            warnings=list(self.warnings),
            trials=len(self.history),
        )


def optimize(rows: Iterable[RosterRow], cfg: Optional[GroupingConfig] = None) -> GroupingResult:
    """Construye registro y matriz desde el roster y corre un optimizador nuevo."""
    cfg = (cfg or GroupingConfig()).validate()
    registry, matrix = build_relationships(rows)
    return GroupOptimizer(registry, matrix, cfg).run()
