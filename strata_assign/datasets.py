"""
Loading and fetching the tables handed to the randomizer.

The J-PAL randomization exercise ships its Balsakhi school data as a Stata
file inside a zip archive; these helpers download, unpack, read and write
such files. None of them is used while a randomization runs.
"""
from __future__ import annotations

import zipfile
from pathlib import Path
from typing import List, Optional, Union

import pandas as pd
import requests

PathLike = Union[str, Path]

BALSAKHI_URL = (
    "https://www.povertyactionlab.org/sites/default/files/resources/"
    "Simple%20Guide%20Randomization%20Stata.zip"
)
BALSAKHI_MEMBER = "RandomizationExercise_balsakhi_data.dta"


def download_file(url: str, dest: PathLike, timeout: int = 60) -> Path:
    """Stream ``url`` to ``dest`` and return the written path."""
    dest = Path(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    response = requests.get(url, stream=True, timeout=timeout)
    response.raise_for_status()
    with open(dest, "wb") as handle:
        for chunk in response.iter_content(chunk_size=64 * 1024):
            if chunk:
                handle.write(chunk)
    return dest


def extract_archive(archive: PathLike, dest_dir: PathLike) -> List[Path]:
    """Unzip ``archive`` into ``dest_dir`` and return the extracted file paths."""
    dest_dir = Path(dest_dir).resolve()
    dest_dir.mkdir(parents=True, exist_ok=True)
    extracted = []
    with zipfile.ZipFile(archive) as zf:
        for member in zf.infolist():
            target = (dest_dir / member.filename).resolve()
            if dest_dir != target and dest_dir not in target.parents:
                raise ValueError(f"Archive member '{member.filename}' escapes {dest_dir}")
            zf.extract(member, dest_dir)
            if not member.is_dir():
                extracted.append(target)
    return extracted


def fetch_dataset(
    url: str = BALSAKHI_URL,
    workdir: PathLike = ".",
    member: str = BALSAKHI_MEMBER,
    timeout: int = 60,
) -> Path:
    """Download a zip archive, extract it and return the path of ``member``."""
    workdir = Path(workdir)
    archive = download_file(url, workdir / "dataset.zip", timeout=timeout)
    for path in extract_archive(archive, workdir):
        if path.name == Path(member).name:
            return path
    raise FileNotFoundError(f"'{member}' not found in archive downloaded from {url}")


def load_dataset(path: PathLike, id_column: Optional[str] = None) -> pd.DataFrame:
    """Read a CSV or Stata file.

    Identifiers in CSV files are read as strings, so leading zeros survive and
    the sort order used for randomization does not depend on type inference.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".csv":
        dtype = {id_column: str} if id_column else None
        return pd.read_csv(path, dtype=dtype)
    if suffix == ".dta":
        return pd.read_stata(path)
    raise ValueError(f"Unsupported dataset format '{suffix}'. Use .csv or .dta.")


def save_dataset(df: pd.DataFrame, path: PathLike) -> Path:
    path = Path(path)
    suffix = path.suffix.lower()
    path.parent.mkdir(parents=True, exist_ok=True)
    if suffix == ".csv":
        df.to_csv(path, index=False)
    elif suffix == ".dta":
        df.to_stata(path, write_index=False)
    else:
        raise ValueError(f"Unsupported dataset format '{suffix}'. Use .csv or .dta.")
    return path
