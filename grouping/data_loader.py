# grouping/data_loader.py
from pathlib import Path
from typing import List

import pandas as pd

from .config import GroupingConfig
from .model import DataIntegrityError
from .relationships import RosterRow


def load_settings(path: str) -> pd.DataFrame:
    """Hoja de configuración: primera columna = nombre de la clase."""
    settings_path = Path(path)
    if not settings_path.exists():
        raise DataIntegrityError(f"No se encontró la hoja de configuración '{path}' en load_settings()")
    df = pd.read_csv(settings_path, index_col=0, dtype=str)
    df.index = df.index.astype(str).str.strip()
    return df


def resolve_class_table(settings: pd.DataFrame, cfg: GroupingConfig) -> Path:
    """Ubica la tabla de relaciones de la clase: <Spreadsheet>/<Sheet Name>.csv"""
    if cfg.class_name not in settings.index:
        raise DataIntegrityError(
            f"No se encontró la clase '{cfg.class_name}' en la hoja de configuración "
            f"'{cfg.settings_path}' en resolve_class_table()"
        )
    row = settings.loc[cfg.class_name]

    def _field(column: str) -> str:
        value = row.get(column) if column in settings.columns else None
        if value is None or pd.isna(value) or not str(value).strip():
            raise DataIntegrityError(
                f"No se encontró la columna '{column}' para la clase '{cfg.class_name}' "
                f"en resolve_class_table()"
            )
        return str(value).strip()

    directory = _field(cfg.spreadsheet_column)
    sheet_name = _field(cfg.sheet_name_column)
    return Path(directory) / f"{sheet_name}.csv"


def load_relationship_table(path) -> pd.DataFrame:
    table_path = Path(path)
    if not table_path.exists():
        raise DataIntegrityError(f"No se encontró la tabla de relaciones '{path}' en load_relationship_table()")
    df = pd.read_csv(table_path, index_col=0)
    df.index = df.index.map(lambda x: x if pd.isna(x) else str(x).strip())
    df.columns = [str(c).strip() for c in df.columns]
    # Int64 admite celdas vacías sin convertir los puntajes a float
    for col in df.columns:
        values = df[col]
        if pd.api.types.is_numeric_dtype(values) and (values.dropna() % 1 == 0).all():
            df[col] = values.astype("Int64")
    return df


def roster_rows_from_table(df: pd.DataFrame) -> List[RosterRow]:
    rows: List[RosterRow] = []
    for label, series in df.iterrows():
        cells = [(col, None if pd.isna(val) else val) for col, val in series.items()]
        rows.append(RosterRow(label=None if pd.isna(label) else label, cells=cells))
    return rows


def save_relationship_table(df: pd.DataFrame, path) -> None:
    table_path = Path(path)
    table_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(table_path)
