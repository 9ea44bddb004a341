from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional

import typer
import yaml

from .datasets import BALSAKHI_MEMBER, BALSAKHI_URL, fetch_dataset, load_dataset, save_dataset
from .identifiers import MissingFieldError, check_unique_ids
from .randomize import RandomizationConfig, Randomizer

app = typer.Typer(help="Seeded, stratified treatment assignment")

DEFAULT_CONFIG = Path(__file__).parent / "config" / "default.yaml"


def _expand_env(value):
    if isinstance(value, str):
        return os.path.expandvars(value)
    if isinstance(value, dict):
        return {k: _expand_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand_env(v) for v in value]
    return value


def load_config(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle)
    return _expand_env(raw or {})


def build_randomization_config(cfg: dict) -> RandomizationConfig:
    seed = cfg.get("seed")
    return RandomizationConfig(
        id_column=cfg["id_column"],
        treatment_column=cfg.get("treatment_column", "treatment"),
        arms=list(cfg.get("arms") or ["treatment", "control"]),
        split_fraction=float(cfg.get("split_fraction", 0.5)),
        strata=list(cfg.get("strata") or []),
        seed=int(seed) if seed is not None else None,
        random_keys=int(cfg.get("random_keys", 1)),
        key_prefix=cfg.get("key_prefix", "random"),
        rank_column=cfg.get("rank_column", "strata_index"),
        size_column=cfg.get("size_column", "strata_size"),
        indicator_column=cfg.get("indicator_column"),
        allow_duplicate_ids=bool(cfg.get("allow_duplicate_ids", False)),
        balance_covariates=list(cfg.get("balance_covariates") or []),
    )


def _randomization_section(
    config_path: Optional[Path],
    seed: Optional[int] = None,
    strata: Optional[List[str]] = None,
    id_column: Optional[str] = None,
) -> dict:
    app_config = load_config(str(config_path or DEFAULT_CONFIG))
    section = dict(app_config.get("randomization", {}))
    if seed is not None:
        section["seed"] = seed
    if strata:
        section["strata"] = [] if strata == ["none"] else strata
    if id_column:
        section["id_column"] = id_column
    return section


@app.command()
def randomize(
    data: Path = typer.Option(..., exists=True, readable=True, help="Dataset to randomize (CSV or Stata)."),
    output: Path = typer.Option(Path("randomized.csv"), help="Output file for assignments (CSV or Stata)."),
    config_path: Optional[Path] = typer.Option(None, "--config", exists=True, help="Project config (YAML)."),
    seed: Optional[int] = typer.Option(None, help="Override the configured seed."),
    strata: Optional[List[str]] = typer.Option(None, help="Stratification column (repeatable); 'none' disables."),
    id_column: Optional[str] = typer.Option(None, help="Override the identifier column."),
    allow_duplicates: bool = typer.Option(False, help="Proceed even if identifiers repeat."),
    strata_output: Optional[Path] = typer.Option(None, help="Optional CSV for the per-stratum summary."),
) -> None:
    """Assign units to arms and write the augmented table."""
    section = _randomization_section(config_path, seed, strata, id_column)
    if allow_duplicates:
        section["allow_duplicate_ids"] = True
    rand_cfg = build_randomization_config(section)
    df = load_dataset(data, id_column=rand_cfg.id_column)
    try:
        result = Randomizer(rand_cfg).run(df)
    except (ValueError, MissingFieldError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)
    save_dataset(result.assignments, output)
    typer.echo(f"Saved assignments to {output}")
    if rand_cfg.seed is None:
        typer.echo("Warning: no seed configured; this assignment cannot be reproduced.", err=True)
    for arm, count in result.diagnostics["arm_counts"].items():
        typer.echo(f"  {arm}: {count}")
    if strata_output:
        save_dataset(result.strata_table, strata_output)
        typer.echo(f"Strata summary saved to {strata_output}")


@app.command("check-ids")
def check_ids_cmd(
    data: Path = typer.Option(..., exists=True, readable=True, help="Dataset to check."),
    id_column: str = typer.Option(..., help="Column expected to identify rows uniquely."),
) -> None:
    """Report duplicated identifiers; exits with code 1 if any exist."""
    df = load_dataset(data, id_column=id_column)
    try:
        report = check_unique_ids(df, id_column)
    except MissingFieldError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)
    if report.is_unique:
        typer.echo(f"'{id_column}' uniquely identifies all {len(df)} rows.")
        return
    typer.echo(f"'{id_column}' has {report.count} duplicate row(s).")
    typer.echo(f"Duplicated values: {', '.join(str(v) for v in report.duplicated_ids[:10])}")
    raise typer.Exit(code=1)


@app.command()
def validate(
    data: Path = typer.Option(..., exists=True, readable=True, help="Dataset to randomize (CSV or Stata)."),
    simulations: int = typer.Option(500, help="Number of simulated randomizations."),
    base_seed: Optional[int] = typer.Option(None, help="Seed of the first simulation (defaults to the configured seed)."),
    config_path: Optional[Path] = typer.Option(None, "--config", exists=True, help="Project config (YAML)."),
    output: Optional[Path] = typer.Option(None, help="Optional CSV with per-unit assignment probabilities."),
) -> None:
    """Check that every unit has the expected chance of landing in each arm."""
    rand_cfg = build_randomization_config(_randomization_section(config_path))
    df = load_dataset(data, id_column=rand_cfg.id_column)
    start = base_seed if base_seed is not None else rand_cfg.seed
    try:
        result = Randomizer(rand_cfg).validate_randomization(df, n_simulations=simulations, base_seed=start)
    except (ValueError, MissingFieldError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)
    for arm, stats in result.summary_stats.items():
        typer.echo(f"{arm}: mean={stats['mean']:.3f} expected={stats['expected']:.3f} std={stats['std']:.3f}")
    for message in result.warnings:
        typer.echo(f"- {message}", err=True)
    if output:
        save_dataset(result.assignment_probabilities, output)
        typer.echo(f"Probabilities saved to {output}")
    if not result.is_valid:
        raise typer.Exit(code=1)
    typer.echo("Randomization appears fair.")


@app.command()
def fetch(
    url: Optional[str] = typer.Option(None, help="Zip archive to download (defaults to the config's data.url)."),
    member: Optional[str] = typer.Option(None, help="File to pick from the archive (defaults to data.member)."),
    workdir: Path = typer.Option(Path("."), help="Directory for the archive and extracted files."),
    config_path: Optional[Path] = typer.Option(None, "--config", exists=True, help="Project config (YAML)."),
) -> None:
    """Download and unpack the exercise dataset."""
    data_cfg = load_config(str(config_path or DEFAULT_CONFIG)).get("data") or {}
    url = url or data_cfg.get("url") or BALSAKHI_URL
    member = member or data_cfg.get("member") or BALSAKHI_MEMBER
    path = fetch_dataset(url=url, workdir=workdir, member=member)
    typer.echo(f"Dataset available at {path}")


def main():
    app()


if __name__ == "__main__":
    main()
