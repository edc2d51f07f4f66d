"""Command-line entrypoints for mixcalc."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Annotated, Any, Dict, NoReturn

import typer

from mixcalc.catalog import CatalogInterface, StaticCatalog, default_catalog
from mixcalc.errors import MixtureError
from mixcalc.factories import new_citrus_juice, new_spirit, new_syrup
from mixcalc.mixture import Mixture
from mixcalc.models import SolverTarget
from mixcalc.solver import SolverConfig, solve

app = typer.Typer(add_completion=False)

logger = logging.getLogger(__name__)


def _catalog(ctx: typer.Context) -> CatalogInterface:
    catalog_file = (ctx.obj or {}).get("catalog_file")
    if catalog_file is None:
        return default_catalog()
    return StaticCatalog.from_json(catalog_file)


def _load_mixture(path: Path, catalog: CatalogInterface) -> Mixture:
    with open(path, "r") as f:
        data = json.load(f)
    return Mixture.deserialize(catalog, data)


def _report(mixture: Mixture, precision: int) -> Dict[str, Any]:
    return {
        "id": mixture.id,
        "label": mixture.label,
        "analysis": asdict(mixture.analyze(precision)),
    }


def _emit(payload: Dict[str, Any], output: Path | None = None) -> None:
    json_output = json.dumps(payload, indent=2)
    typer.echo(json_output)
    if output:
        with open(output, "w") as f:
            f.write(json_output)


def _fail(exc: Exception) -> NoReturn:
    typer.echo(f"Error: {exc}", err=True)
    raise typer.Exit(code=1)


@app.callback()
def main(
    ctx: typer.Context,
    catalog: Annotated[
        Path | None, typer.Option(help="JSON file with a custom substance catalog.")
    ] = None,
    verbose: Annotated[bool, typer.Option(help="Enable debug logging.")] = False,
) -> None:
    """Analyze and solve beverage mixtures."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    ctx.obj = {"catalog_file": catalog}


@app.command()
def analyze(
    ctx: typer.Context,
    mixture_file: Annotated[Path, typer.Argument(help="Serialized mixture JSON file.")],
    precision: Annotated[int, typer.Option(help="Decimal places in the report.")] = 3,
    ingredients: Annotated[
        bool, typer.Option(help="Include a per-ingredient breakdown.")
    ] = False,
) -> None:
    """Print the physical properties of a mixture."""
    try:
        mixture = _load_mixture(mixture_file, _catalog(ctx))
        payload = _report(mixture, precision)
        if ingredients:
            payload["ingredients"] = {
                ingredient_id: {
                    "name": mixture.get_ingredient(ingredient_id).name,
                    **asdict(mixture.analyze_ingredient(ingredient_id, precision)),
                }
                for ingredient_id in mixture.ingredient_ids
            }
    except (MixtureError, OSError, json.JSONDecodeError) as exc:
        _fail(exc)
    _emit(payload)


@app.command("solve")
def solve_command(
    ctx: typer.Context,
    mixture_file: Annotated[Path, typer.Argument(help="Serialized mixture JSON file.")],
    volume: Annotated[float | None, typer.Option(help="Target volume (mL).")] = None,
    abv: Annotated[float | None, typer.Option(help="Target ABV (%).")] = None,
    brix: Annotated[float | None, typer.Option(help="Target Brix.")] = None,
    ph: Annotated[float | None, typer.Option(help="Target pH.")] = None,
    seed: Annotated[int | None, typer.Option(help="Random seed for the solver.")] = None,
    output: Annotated[
        Path | None, typer.Option(help="Path to save the solved mixture JSON.")
    ] = None,
) -> None:
    """Adjust a mixture's ingredient masses to hit the given targets.

    Targets that are not given keep the mixture's current value.
    """
    try:
        mixture = _load_mixture(mixture_file, _catalog(ctx))
        target = SolverTarget(
            volume=mixture.volume if volume is None else volume,
            abv=mixture.abv if abv is None else abv,
            brix=mixture.brix if brix is None else brix,
            ph=mixture.ph if ph is None else ph,
        )
        logger.debug("Solving %s for %s", mixture.id, target)
        result = solve(mixture, target, SolverConfig(seed=seed))
    except (MixtureError, OSError, json.JSONDecodeError) as exc:
        _fail(exc)

    payload = _report(result, 3)
    payload["mixture"] = result.serialize()
    typer.echo(json.dumps(payload, indent=2))
    if output:
        with open(output, "w") as f:
            json.dump(result.serialize(), f, indent=2)


@app.command()
def spirit(
    ctx: typer.Context,
    volume: Annotated[float, typer.Option(help="Volume (mL).")] = 100.0,
    abv: Annotated[float, typer.Option(help="Alcohol by volume (%).")] = 40.0,
    output: Annotated[Path | None, typer.Option(help="Path to save the mixture JSON.")] = None,
) -> None:
    """Print a serialized ethanol/water spirit."""
    try:
        mixture = new_spirit(_catalog(ctx), volume, abv)
    except (MixtureError, OSError, json.JSONDecodeError) as exc:
        _fail(exc)
    _emit(mixture.serialize(), output)


@app.command()
def syrup(
    ctx: typer.Context,
    volume: Annotated[float, typer.Option(help="Volume (mL).")] = 100.0,
    brix: Annotated[float, typer.Option(help="Sugar concentration (Brix).")] = 50.0,
    sweetener: Annotated[str, typer.Option(help="Sweetener substance id.")] = "sucrose",
    output: Annotated[Path | None, typer.Option(help="Path to save the mixture JSON.")] = None,
) -> None:
    """Print a serialized syrup."""
    try:
        mixture = new_syrup(_catalog(ctx), volume, brix, sweetener)
    except (MixtureError, OSError, json.JSONDecodeError) as exc:
        _fail(exc)
    _emit(mixture.serialize(), output)


@app.command()
def citrus(
    ctx: typer.Context,
    fruit: Annotated[str, typer.Argument(help="lemon, lime, orange or grapefruit.")],
    volume: Annotated[float, typer.Option(help="Volume (mL).")] = 100.0,
    output: Annotated[Path | None, typer.Option(help="Path to save the mixture JSON.")] = None,
) -> None:
    """Print a serialized citrus juice."""
    try:
        mixture = new_citrus_juice(_catalog(ctx), fruit, volume)
    except (MixtureError, OSError, json.JSONDecodeError) as exc:
        _fail(exc)
    _emit(mixture.serialize(), output)


@app.command()
def substances(ctx: typer.Context) -> None:
    """List the substances of the catalog."""
    try:
        catalog = _catalog(ctx)
    except (MixtureError, OSError, json.JSONDecodeError) as exc:
        _fail(exc)
    _emit({"substances": [asdict(substance) for substance in catalog.substances()]})


if __name__ == "__main__":
    app()
