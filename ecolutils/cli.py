"""Command-line interface for ecolutils."""

import functools
import logging
import sys
from pathlib import Path

import click

from . import __version__, export, groups, io, niche, nullmodel, stats, temporal, turnover
from .errors import EcolUtilsError


# Configure logging
def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def replicate_options(default_n: int = 1000):
    """Options shared by every null-model command."""

    def decorator(f):
        f = click.option("--reserved-cores", type=int, default=1, show_default=True,
                         help="Cores left free when --workers is 0")(f)
        f = click.option("--workers", type=int, default=None,
                         help="Worker processes, 0 for all free cores [default: sequential]")(f)
        f = click.option("--seed", type=int, default=None, help="Random seed")(f)
        f = click.option("--n", "n_replicates", type=int, default=default_n, show_default=True,
                         help="Number of null replicates")(f)
        f = click.option("--output-dir", "-o", type=click.Path(), required=True, help="Output directory")(f)
        return f

    return decorator


def probs_options(f):
    f = click.option("--upper", type=float, default=0.975, show_default=True, help="Upper quantile")(f)
    f = click.option("--lower", type=float, default=0.025, show_default=True, help="Lower quantile")(f)
    return f


def community_options(f):
    f = click.option("--layer", default=None, help="AnnData layer with counts (.h5ad input)")(f)
    f = click.option("--transpose", is_flag=True, help="Input stores taxa as rows")(f)
    return f


def handle_errors(f):
    """Report analysis errors without a traceback and exit with status 1."""

    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except EcolUtilsError as e:
            click.echo(f"ERROR: {e}", err=True)
            sys.exit(1)

    return wrapper


def build_parameters(analysis: str, **overrides) -> nullmodel.NullModelParameters:
    """Defaults for ``analysis`` updated with the given options; exits on invalid values."""
    params = nullmodel.get_default_parameters(analysis)
    for key, value in overrides.items():
        if value is not None:
            setattr(params, key, value)

    is_valid, errors = nullmodel.validate_parameters(params)
    if not is_valid:
        for msg in errors:
            click.echo(f"ERROR: {msg}", err=True)
        sys.exit(1)

    return params


def metadata_column(metadata_file: str, column: str):
    """Load one metadata column as a Series indexed by sample id."""
    metadata = io.load_metadata(metadata_file)
    if column not in metadata.columns:
        click.echo(
            f"ERROR: Column '{column}' not found in {metadata_file}. "
            f"Available: {metadata.columns.tolist()}",
            err=True,
        )
        sys.exit(1)
    return metadata[column]


def write_outputs(
    analysis: str,
    result,
    output_dir: str,
    input_files: list,
    params: nullmodel.NullModelParameters,
    n_samples: int = None,
    n_taxa: int = None,
) -> Path:
    """Write ``<analysis>.csv`` and ``run_manifest.json``; returns the table path."""
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    table_path = export.write_result_table(result, out / f"{analysis}.csv")

    manifest = export.create_manifest(
        analysis,
        input_files=input_files,
        parameters=params.to_dict(),
        result=result,
        n_samples=n_samples,
        n_taxa=n_taxa,
    )
    export.save_manifest(manifest, str(out / "run_manifest.json"))

    click.echo(f"Result: {table_path}")
    return table_path


def echo_sign_counts(result):
    counts = result["sign"].value_counts()
    for label, count in counts.items():
        click.echo(f"  {label}: {count}")


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def main(verbose):
    """EcolUtils: null-model classification of ecological community data."""
    setup_logging(verbose)


@main.command()
@click.argument("input_file", type=click.Path(exists=True))
@community_options
@replicate_options(default_n=100)
@click.option("--depth", type=int, default=None, help="Rarefaction depth [default: smallest sample total]")
@click.option("--no-round", is_flag=True, help="Keep fractional averages")
@handle_errors
def rarefy(input_file, transpose, layer, output_dir, n_replicates, seed, workers, reserved_cores,
           depth, no_round):
    """
    Average repeated rarefactions of a community table.

    INPUT_FILE: Community table (CSV/TSV, samples as rows) or H5AD file
    """
    community = io.load_community(input_file, transpose=transpose, layer=layer)
    params = build_parameters(
        "rarefaction",
        n_replicates=n_replicates,
        depth=depth,
        round_output=not no_round,
        n_workers=workers,
        reserved_cores=reserved_cores,
        random_state=seed,
    )

    result = nullmodel.rarefy_averaged(
        community,
        depth=params.depth,
        n=params.n_replicates,
        round_output=params.round_output,
        random_state=params.random_state,
        n_workers=params.resolve_n_workers(),
    )

    write_outputs("rarefaction", result, output_dir, [input_file], params, *result.shape)


@main.command("niche-breadth")
@click.argument("input_file", type=click.Path(exists=True))
@community_options
@replicate_options()
@probs_options
@click.option("--method", type=click.Choice(["levins", "shannon", "occurrence"]), default="levins",
              show_default=True, help="Niche width statistic")
@click.option("--perm-method", type=click.Choice(["quasiswap", "r2dtable"]), default="quasiswap",
              show_default=True, help="Null model")
@handle_errors
def niche_breadth(input_file, transpose, layer, output_dir, n_replicates, seed, workers, reserved_cores,
                  lower, upper, method, perm_method):
    """
    Classify taxa as generalists or specialists.

    INPUT_FILE: Integer community table (CSV/TSV, samples as rows) or H5AD file
    """
    community = io.load_community(input_file, transpose=transpose, layer=layer)
    params = build_parameters(
        "niche_breadth",
        n_replicates=n_replicates,
        probs=(lower, upper),
        niche_width_method=method,
        perm_method=perm_method,
        n_workers=workers,
        reserved_cores=reserved_cores,
        random_state=seed,
    )

    result = niche.classify_niche_breadth(
        community,
        method=params.niche_width_method,
        perm_method=params.perm_method,
        n=params.n_replicates,
        probs=params.probs,
        random_state=params.random_state,
        n_workers=params.resolve_n_workers(),
    )

    write_outputs("niche_breadth", result, output_dir, [input_file], params, *community.shape)
    echo_sign_counts(result)


def _niche_position(analysis, input_file, transpose, layer, metadata, env_col, output_dir,
                    n_replicates, seed, workers, reserved_cores, lower, upper):
    community = io.load_community(input_file, transpose=transpose, layer=layer)
    env = metadata_column(metadata, env_col)
    params = build_parameters(
        analysis,
        n_replicates=n_replicates,
        probs=(lower, upper),
        n_workers=workers,
        reserved_cores=reserved_cores,
        random_state=seed,
    )
    params.extra["env_col"] = env_col

    classify_fn = niche.classify_niche_value if analysis == "niche_value" else niche.classify_niche_range
    result = classify_fn(
        community,
        env,
        n=params.n_replicates,
        probs=params.probs,
        random_state=params.random_state,
        n_workers=params.resolve_n_workers(),
    )

    write_outputs(analysis, result, output_dir, [input_file, metadata], params, *community.shape)
    echo_sign_counts(result)


@main.command("niche-value")
@click.argument("input_file", type=click.Path(exists=True))
@community_options
@click.option("--metadata", "-m", type=click.Path(exists=True), required=True, help="Sample metadata table")
@click.option("--env-col", required=True, help="Environmental variable column in the metadata")
@replicate_options()
@probs_options
@handle_errors
def niche_value(input_file, transpose, layer, metadata, env_col, output_dir, n_replicates,
                seed, workers, reserved_cores, lower, upper):
    """
    Classify the abundance-weighted environmental mean of each taxon.

    INPUT_FILE: Community table (CSV/TSV, samples as rows) or H5AD file
    """
    _niche_position("niche_value", input_file, transpose, layer, metadata, env_col, output_dir,
                    n_replicates, seed, workers, reserved_cores, lower, upper)


@main.command("niche-range")
@click.argument("input_file", type=click.Path(exists=True))
@community_options
@click.option("--metadata", "-m", type=click.Path(exists=True), required=True, help="Sample metadata table")
@click.option("--env-col", required=True, help="Environmental variable column in the metadata")
@replicate_options()
@probs_options
@handle_errors
def niche_range(input_file, transpose, layer, metadata, env_col, output_dir, n_replicates,
                seed, workers, reserved_cores, lower, upper):
    """
    Classify the environmental range occupied by each taxon.

    INPUT_FILE: Community table (CSV/TSV, samples as rows) or H5AD file
    """
    _niche_position("niche_range", input_file, transpose, layer, metadata, env_col, output_dir,
                    n_replicates, seed, workers, reserved_cores, lower, upper)


@main.command()
@click.argument("input_file", type=click.Path(exists=True))
@community_options
@replicate_options()
@probs_options
@click.option("--lag-max", type=int, default=120, show_default=True, help="Maximum autocorrelation lag")
@handle_errors
def seasonality(input_file, transpose, layer, output_dir, n_replicates, seed, workers, reserved_cores,
                lower, upper, lag_max):
    """
    Classify taxa by the strength of their seasonal signal.

    INPUT_FILE: Community table with samples (rows) in temporal order, or H5AD file
    """
    community = io.load_community(input_file, transpose=transpose, layer=layer)
    params = build_parameters(
        "seasonality",
        n_replicates=n_replicates,
        probs=(lower, upper),
        lag_max=lag_max,
        n_workers=workers,
        reserved_cores=reserved_cores,
        random_state=seed,
    )

    result = temporal.classify_seasonality(
        community,
        n=params.n_replicates,
        probs=params.probs,
        lag_max=params.lag_max,
        random_state=params.random_state,
        n_workers=params.resolve_n_workers(),
    )

    write_outputs("seasonality", result, output_dir, [input_file], params, *community.shape)
    echo_sign_counts(result)


def _dissimilarity_input(input_file, dissimilarity, transpose, layer, metric):
    """Load a dissimilarity matrix, or compute one from the community table."""
    if dissimilarity:
        return io.load_dissimilarity(dissimilarity)
    community = io.load_community(input_file, transpose=transpose, layer=layer)
    return stats.community_dissimilarity(community, metric=metric)


@main.command()
@click.argument("input_file", type=click.Path(exists=True))
@community_options
@click.option("--dissimilarity", "-d", type=click.Path(exists=True), default=None,
              help="Precomputed dissimilarity matrix [default: computed from INPUT_FILE]")
@click.option("--metric", default="braycurtis", show_default=True, help="Dissimilarity metric")
@click.option("--metadata", "-m", type=click.Path(exists=True), required=True, help="Sample metadata table")
@click.option("--group-col", required=True, help="Grouping factor column in the metadata")
@click.option("--output-dir", "-o", type=click.Path(), required=True, help="Output directory")
@click.option("--permutations", type=int, default=1000, show_default=True, help="Permutations per pair")
@click.option("--correction", default="fdr", show_default=True, help="p-value correction method")
@click.option("--seed", type=int, default=None, help="Random seed")
@handle_errors
def pairwise(input_file, transpose, layer, dissimilarity, metric, metadata, group_col, output_dir,
             permutations, correction, seed):
    """
    Pairwise PERMANOVA between all levels of a grouping factor.

    INPUT_FILE: Community table (CSV/TSV, samples as rows) or H5AD file
    """
    matrix = _dissimilarity_input(input_file, dissimilarity, transpose, layer, metric)
    factor = metadata_column(metadata, group_col)
    params = build_parameters(
        "pairwise", n_replicates=permutations, correction=correction, random_state=seed
    )
    params.extra.update({"group_col": group_col, "metric": None if dissimilarity else metric})

    result = groups.pairwise_permanova(
        matrix,
        factor,
        permutations=params.n_replicates,
        correction=params.correction,
        random_state=params.random_state,
    )

    write_outputs(
        "pairwise", result.set_index("combination"), output_dir,
        [input_file, dissimilarity, metadata], params, n_samples=matrix.shape[0],
    )
    click.echo(result[["combination", "p_value", "p_value_corrected"]].to_string(index=False))


@main.command("split-window")
@click.argument("input_file", type=click.Path(exists=True))
@community_options
@click.option("--dissimilarity", "-d", type=click.Path(exists=True), default=None,
              help="Precomputed dissimilarity matrix [default: computed from INPUT_FILE]")
@click.option("--metric", default="braycurtis", show_default=True, help="Dissimilarity metric")
@click.option("--metadata", "-m", type=click.Path(exists=True), required=True, help="Sample metadata table")
@click.option("--env-col", required=True, help="Gradient column in the metadata")
@click.option("--window-size", type=int, default=10, show_default=True, help="Even window size")
@replicate_options()
@probs_options
@handle_errors
def split_window(input_file, transpose, layer, dissimilarity, metric, metadata, env_col, window_size,
                 output_dir, n_replicates, seed, workers, reserved_cores, lower, upper):
    """
    Split moving-window analysis of community turnover along a gradient.

    INPUT_FILE: Community table (CSV/TSV, samples as rows) or H5AD file
    """
    matrix = _dissimilarity_input(input_file, dissimilarity, transpose, layer, metric)
    env = metadata_column(metadata, env_col)
    params = build_parameters(
        "split_window",
        n_replicates=n_replicates,
        probs=(lower, upper),
        window_size=window_size,
        n_workers=workers,
        reserved_cores=reserved_cores,
        random_state=seed,
    )
    params.extra.update({"env_col": env_col, "metric": None if dissimilarity else metric})

    result = turnover.split_window_analysis(
        matrix,
        env,
        window_size=params.window_size,
        nrep=params.n_replicates,
        probs=params.probs,
        random_state=params.random_state,
        n_workers=params.resolve_n_workers(),
    )

    export.write_split_window_result(result, output_dir)
    manifest = export.create_manifest(
        "split_window",
        input_files=[input_file, dissimilarity, metadata],
        parameters=params.to_dict(),
        result=result.windows,
        n_samples=matrix.shape[0],
    )
    export.save_manifest(manifest, str(Path(output_dir) / "run_manifest.json"))

    click.echo(f"Result: {output_dir}")
    echo_sign_counts(result.windows)


if __name__ == "__main__":
    main()
