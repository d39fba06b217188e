"""
Weka ARFF feature files.

  % source: <data directory>
  @relation <prefix>-<name>
  @attribute 'style.char_len' numeric
  ...
  @attribute 'ArticleMetaData.veracity' {fake,real}
  @data
  0.125,0.500,...,real

Dense rows by default; sparse rows (``{index value, ...}``) are built from a
scipy CSR matrix. Output depends only on the inputs, so identical inputs give
byte-identical files.
"""
from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, List, Protocol, Sequence

import numpy as np
import scipy.sparse as sp

RE_BARE = re.compile(r"^[A-Za-z_][A-Za-z0-9_.\-]*$")


class FeatureFileWriter(Protocol):
    def write_feature_file(
        self,
        values: Sequence[Sequence[float]],
        class_values: Sequence[str],
        source: str,
        meta_type: str,
        class_feature: str,
        class_mapping: Dict[str, str],
        feature_names: Sequence[str],
    ) -> Path:
        ...


def quote(name: str) -> str:
    """ARFF-quote a name unless it is a plain identifier."""
    if RE_BARE.match(name):
        return name
    escaped = (
        name.replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f"'{escaped}'"


class WekaFeatureFileWriter:
    def __init__(
        self,
        output_file: Path,
        relation_prefix: str,
        relation_name: str,
        is_sparse: bool = False,
        decimal_places: int = 3,
        is_numeric: bool = False,
    ):
        self.output_file = Path(output_file)
        self.relation_prefix = relation_prefix
        self.relation_name = relation_name
        self.is_sparse = is_sparse
        self.decimal_places = decimal_places
        self.is_numeric = is_numeric

    def fmt(self, v: float) -> str:
        s = f"{v:.{self.decimal_places}f}"
        # avoid "-0.000"
        return s[1:] if s.startswith("-") and float(s) == 0 else s

    def class_attribute(self, meta_type: str, class_feature: str, class_mapping: Dict[str, str],
                        class_values: Sequence[str]) -> str:
        name = quote(f"{meta_type}.{class_feature}")
        if self.is_numeric:
            return f"@attribute {name} numeric"
        nominal = sorted(set(class_mapping.values()) | set(class_values))
        return f"@attribute {name} {{{','.join(quote(v) for v in nominal)}}}"

    def header(self, source: str, meta_type: str, class_feature: str, class_mapping: Dict[str, str],
               feature_names: Sequence[str], class_values: Sequence[str]) -> List[str]:
        lines = [
            f"% source: {source}",
            f"@relation {quote(f'{self.relation_prefix}-{self.relation_name}')}",
            "",
        ]
        lines += [f"@attribute {quote(n)} numeric" for n in feature_names]
        lines.append(self.class_attribute(meta_type, class_feature, class_mapping, class_values))
        lines += ["", "@data"]
        return lines

    def dense_rows(self, X: np.ndarray, class_values: Sequence[str]) -> List[str]:
        return [
            ",".join([self.fmt(v) for v in row] + [quote(c)])
            for row, c in zip(X.tolist(), class_values)
        ]

    def sparse_rows(self, X: np.ndarray, class_values: Sequence[str]) -> List[str]:
        # round first so values that print as zero are left out
        M = sp.csr_matrix(np.round(X, self.decimal_places))
        M.eliminate_zeros()
        class_col = X.shape[1]
        rows = []
        for i, c in enumerate(class_values):
            start, stop = M.indptr[i], M.indptr[i + 1]
            cells = [f"{j} {self.fmt(v)}" for j, v in zip(M.indices[start:stop], M.data[start:stop])]
            cells.append(f"{class_col} {quote(c)}")
            rows.append("{" + ", ".join(cells) + "}")
        return rows

    def write_feature_file(
        self,
        values: Sequence[Sequence[float]],
        class_values: Sequence[str],
        source: str,
        meta_type: str,
        class_feature: str,
        class_mapping: Dict[str, str],
        feature_names: Sequence[str],
    ) -> Path:
        if len(values) != len(class_values):
            raise ValueError(f"{len(values)} vectors but {len(class_values)} labels")
        X = np.asarray(values, dtype=np.float64).reshape(len(values), len(feature_names))
        if not np.isfinite(X).all():
            raise ValueError("Found non-finite values in feature matrix")
        lines = self.header(source, meta_type, class_feature, class_mapping, feature_names, class_values)
        lines += self.sparse_rows(X, class_values) if self.is_sparse else self.dense_rows(X, class_values)

        self.output_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.output_file, "w", encoding="utf-8", newline="\n") as f:
            f.write("\n".join(lines) + "\n")
        return self.output_file
