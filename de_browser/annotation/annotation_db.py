from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

MULTI_VALS = ("first", "list", "asNA", "filter")


class AnnotationError(KeyError):
    """
    Raised for an unknown keytype or column in an annotation lookup.
    """
    pass


class AnnotationDB:
    """
    Gene annotation lookup table.

    Each column is both a possible keytype and a possible output column, so the
    same table answers "Ensembl id -> symbol" and "symbol -> Entrez id".

    Lookups follow the usual annotation-package contract:
    - select() keeps 1:many matches as extra rows and logs them
    - map_ids() returns exactly one value per key, resolving 1:many matches
      according to multi_vals
    """

    def __init__(self, table: pd.DataFrame, name: str = "annotation") -> None:
        self.name = name
        self._table = table.reset_index(drop=True)

    @classmethod
    def from_file(cls, path: Path, sep: Optional[str] = None) -> AnnotationDB:
        """
        Load an annotation table from a delimited file.

        The separator is taken from the suffix unless given (.tsv/.txt -> tab).
        """
        path = Path(path)
        if sep is None:
            suffixes = [s.lower() for s in path.suffixes if s.lower() != ".gz"]
            sep = "\t" if suffixes and suffixes[-1] in (".tsv", ".txt", ".tab") else ","
        table = pd.read_csv(path, sep=sep, dtype=str, keep_default_na=True)
        logger.info(
            "Loaded annotation table",
            extra={"path": str(path), "n_rows": len(table), "columns": list(table.columns)},
        )
        return cls(table, name=path.stem)

    def __len__(self) -> int:
        return len(self._table)

    def keytypes(self) -> List[str]:
        return [str(c) for c in self._table.columns]

    def columns(self) -> List[str]:
        return [str(c) for c in self._table.columns]

    def _check(self, keytype: str, columns: Sequence[str]) -> None:
        if keytype not in self._table.columns:
            raise AnnotationError(f"Invalid keytype '{keytype}'. Valid keytypes: {self.keytypes()}")
        unknown = [c for c in columns if c not in self._table.columns]
        if unknown:
            raise AnnotationError(f"Invalid columns {unknown}. Valid columns: {self.columns()}")

    def select(self, keys: Sequence[str], columns: Sequence[str], keytype: str) -> pd.DataFrame:
        """
        Look up `columns` for each key of type `keytype`.

        Returns one row per (key, match) in key order; keys without a match
        appear once with NaN columns. Duplicate keys are looked up once.
        """
        columns = [c for c in columns if c != keytype]
        self._check(keytype, columns)

        unique_keys = list(dict.fromkeys(str(k) for k in keys))
        lookup = self._table[[keytype] + columns].copy()
        lookup[keytype] = lookup[keytype].astype(str)
        lookup = lookup.drop_duplicates()

        query = pd.DataFrame({keytype: unique_keys})
        result = query.merge(lookup, on=keytype, how="left")

        per_key = result.groupby(keytype, sort=False).size()
        n_multi = int((per_key > 1).sum())
        if n_multi:
            logger.info(
                "select() returned 1:many mapping between keys and columns",
                extra={"n_keys": len(unique_keys), "n_multi_mapped": n_multi, "keytype": keytype},
            )

        if columns:
            n_unmapped = int(result[columns].isna().all(axis=1).sum())
            if n_unmapped:
                logger.info(
                    "select() found no match for some keys",
                    extra={"n_keys": len(unique_keys), "n_unmapped": n_unmapped, "keytype": keytype},
                )

        return result.reset_index(drop=True)

    def map_ids(
        self,
        keys: Sequence[str],
        column: str,
        keytype: str,
        multi_vals: str = "first",
    ) -> pd.Series:
        """
        Return one `column` value per key.

        multi_vals decides what happens when a key maps to several values:
        - "first": keep the first value in table order
        - "list": return every distinct value as a list
        - "asNA": return NaN
        - "filter": drop the key from the result

        Unmapped keys give NaN (and are dropped with "filter").
        """
        if multi_vals not in MULTI_VALS:
            raise ValueError(f"multi_vals must be one of {MULTI_VALS}, got '{multi_vals}'")
        if column == keytype:
            raise AnnotationError("column and keytype must differ")

        keys = [str(k) for k in keys]
        selected = self.select(keys, [column], keytype).dropna(subset=[column])
        grouped = selected.groupby(keytype, sort=False)[column]

        if multi_vals == "list":
            mapped = pd.Series(
                {key: list(dict.fromkeys(values)) for key, values in grouped},
                dtype="object",
            )
        else:
            mapped = grouped.first()
            n_values = grouped.nunique()
            multi = n_values[n_values > 1].index
            if multi_vals == "asNA":
                mapped.loc[multi] = np.nan
            elif multi_vals == "filter":
                mapped = mapped.drop(index=multi)

        out = pd.Series([mapped.get(k, np.nan) for k in keys], index=keys, name=column, dtype="object")
        if multi_vals == "filter":
            out = out[out.notna()]
            out = out[~out.index.duplicated()]

        n_unmapped = int(pd.Series([k not in mapped.index for k in keys]).sum())
        if n_unmapped:
            logger.info(
                "Keys without a %s mapping", column,
                extra={"n_unmapped": n_unmapped, "n_keys": len(keys), "keytype": keytype},
            )
        return out
