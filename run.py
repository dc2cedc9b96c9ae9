import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

import pandas as pd

from grouping.config import GroupingConfig, load_config
from grouping.confirm import TableSink, confirm
from grouping.data_loader import (
    load_relationship_table,
    load_settings,
    resolve_class_table,
    roster_rows_from_table,
    save_relationship_table,
)
from grouping.model import DataIntegrityError
from grouping.optimizer import GroupOptimizer
from grouping.relationships import build_relationships
from grouping.result import GroupingResult, ResultCache

TABLE_PATH_KEY = "tablePath"
CLASS_NAME_KEY = "className"


def print_groups(result: GroupingResult):
    print("\n" + "=" * 60)
    print(f"MEJOR PARTICIÓN - puntaje {result.score} ({result.trials} intentos)")
    print("=" * 60)
    for number, group in enumerate(result.groups, start=1):
        print(f"Grupo {number}:")
        for name in group:
            print(f"  - {name}")
    print("=" * 60 + "\n")


def export_outputs(result: GroupingResult, history, out_dir: Path):
    out_dir.mkdir(parents=True, exist_ok=True)
    rows = []
    for number, (names, positions) in enumerate(zip(result.groups, result.positions), start=1):
        for name, position in zip(names, positions):
            rows.append({"grupo": number, "estudiante": name, "posicion": position})
    pd.DataFrame(rows, columns=["grupo", "estudiante", "posicion"]).to_csv(out_dir / "groups.csv", index=False)
    if history:
        pd.DataFrame(history).to_csv(out_dir / "history.csv", index=False)


def calculate(cfg: GroupingConfig, out_dir: Path) -> Optional[GroupingResult]:
    settings = load_settings(cfg.settings_path)
    table_path = resolve_class_table(settings, cfg)
    table = load_relationship_table(table_path)

    print(f"Cargando relaciones de '{cfg.class_name}' desde {table_path}...")
    registry, matrix = build_relationships(roster_rows_from_table(table))
    print(f"Estudiantes: {len(registry)} | Grupos: {cfg.num_groups} | Intentos: {cfg.attempted_depth}")

    optimizer = GroupOptimizer(registry, matrix, cfg)
    result = optimizer.run()
    for warning in result.warnings:
        print(f"ADVERTENCIA: {warning}")
    if result.is_empty:
        print("No hay estudiantes que agrupar; no se guardó ningún resultado.")
        return None

    print_groups(result)
    ResultCache(cfg.cache_path).store_result(
        result, extra={TABLE_PATH_KEY: str(table_path), CLASS_NAME_KEY: cfg.class_name}
    )
    export_outputs(result, optimizer.history, out_dir)
    print(f"Resultado pendiente en {cfg.cache_path}. Use 'accept' o 'decline'.")
    return result


def accept(cfg: GroupingConfig) -> str:
    cache = ResultCache(cfg.cache_path)
    table_path = cache.get(TABLE_PATH_KEY)
    if not table_path:
        raise DataIntegrityError(f"Falta '{TABLE_PATH_KEY}' en {cfg.cache_path} en accept()")
    class_name = cache.get(CLASS_NAME_KEY, cfg.class_name)
    # el resultado solo se retira del caché cuando la tabla ya quedó guardada
    result = cache.peek_result()

    table = load_relationship_table(table_path)
    labels = {}
    for names, positions in zip(result.groups, result.positions):
        labels.update(zip(positions, names))
    body = confirm(result, TableSink(table, labels), class_name=class_name)
    save_relationship_table(table, table_path)
    cache.discard_result()
    print(body)
    return body


def decline(cfg: GroupingConfig, out_dir: Path) -> Optional[GroupingResult]:
    """Descarta la partición pendiente y recalcula con los mismos datos."""
    ResultCache(cfg.cache_path).discard_result()
    print("Partición pendiente descartada.")
    return calculate(cfg, out_dir)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Formación de grupos minimizando puntajes de relación")
    parser.add_argument("command", choices=["calculate", "accept", "decline"])
    parser.add_argument("--config", default="config.yaml", help="Ruta al archivo de configuración")
    parser.add_argument("--class", dest="class_name", default=None, help="Clase en la hoja de configuración")
    parser.add_argument("--groups", type=int, default=None, help="Cantidad de grupos")
    parser.add_argument("--depth", type=int, default=None, help="Cantidad de intentos")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--out_dir", default="outputs")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    cfg = load_config(args.config)
    if args.class_name is not None:
        cfg.class_name = args.class_name
    if args.groups is not None:
        cfg.num_groups = args.groups
    if args.depth is not None:
        cfg.attempted_depth = args.depth
    if args.seed is not None:
        cfg.seed = args.seed

    try:
        cfg.validate()
        if args.command == "accept":
            accept(cfg)
        elif args.command == "decline":
            decline(cfg, Path(args.out_dir))
        else:
            calculate(cfg, Path(args.out_dir))
    except (DataIntegrityError, ValueError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
