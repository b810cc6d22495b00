"""
Example workflow demonstrating the ecolutils null-model analyses.

This script shows how to:
1. Load a community table and sample metadata
2. Validate the community and rarefy it
3. Classify generalists and specialists
4. Classify niche position along an environmental gradient
5. Locate community discontinuities with a split moving window
6. Compare sites with pairwise PERMANOVA
7. Export results and a run manifest
"""

import logging
from pathlib import Path

from ecolutils import export, groups, io, niche, nullmodel, stats, turnover

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def main():
    """Run the example workflow."""

    # ==================== 1. Load Data ====================
    logger.info("Step 1: Loading community table and metadata")

    community_file = "data/otu_table.tsv"  # Replace with your files
    metadata_file = "data/metadata.tsv"

    community = io.load_community(community_file, transpose=True)
    metadata = io.load_metadata(metadata_file)

    summary = io.summarize_community(community)
    logger.info(
        f"Loaded {summary['n_samples']} samples × {summary['n_taxa']} taxa "
        f"(depth {summary['min_depth']:.0f}-{summary['max_depth']:.0f})"
    )

    # ==================== 2. Validate & Rarefy ====================
    logger.info("Step 2: Validating and rarefying")

    is_valid, messages = io.check_community(community, require_integer=True)
    if not is_valid:
        logger.error("Validation failed!")
        for msg in messages:
            logger.error(msg)
        return

    params = nullmodel.get_default_parameters("niche_breadth")
    params.random_state = 42

    with nullmodel.ReplicatePool() as pool:
        rarefied = nullmodel.rarefy_averaged(
            community, n=100, random_state=params.random_state, pool=pool
        )

        # ==================== 3. Niche Breadth ====================
        logger.info("Step 3: Classifying generalists and specialists")

        breadth = niche.classify_niche_breadth(
            rarefied,
            method=params.niche_width_method,
            perm_method=params.perm_method,
            n=params.n_replicates,
            probs=params.probs,
            random_state=params.random_state,
            pool=pool,
        )
        logger.info(f"Niche breadth labels: {breadth['sign'].value_counts().to_dict()}")

        # ==================== 4. Niche Position ====================
        logger.info("Step 4: Classifying niche position along depth")

        depth = metadata["depth_m"]
        position = niche.classify_niche_value(
            rarefied, depth, n=params.n_replicates, random_state=params.random_state, pool=pool
        )

        # ==================== 5. Split Moving Window ====================
        logger.info("Step 5: Split moving-window analysis along depth")

        dissimilarity = stats.community_dissimilarity(rarefied, metric="braycurtis")
        windows = turnover.split_window_analysis(
            dissimilarity, depth, window_size=10, nrep=1000, random_state=params.random_state, pool=pool
        )
        logger.info(f"{len(windows.significant_windows())} significant windows")

    # ==================== 6. Pairwise PERMANOVA ====================
    logger.info("Step 6: Pairwise PERMANOVA between sites")

    pairwise = groups.pairwise_permanova(
        dissimilarity, metadata["site"], permutations=999, correction="fdr", random_state=42
    )
    logger.info(f"\n{pairwise.to_string(index=False)}")

    # ==================== 7. Export Results ====================
    logger.info("Step 7: Exporting results")

    output_dir = Path("results")
    output_dir.mkdir(parents=True, exist_ok=True)

    export.write_result_table(rarefied, output_dir / "rarefied.csv")
    export.write_result_table(breadth, output_dir / "niche_breadth.csv")
    export.write_result_table(position, output_dir / "niche_value.csv")
    export.write_result_table(pairwise, output_dir / "pairwise.csv", index=False)
    export.write_split_window_result(windows, output_dir)

    manifest = export.create_manifest(
        "example_workflow",
        input_files=[community_file, metadata_file],
        parameters=params.to_dict(),
        result=breadth,
        n_samples=summary["n_samples"],
        n_taxa=summary["n_taxa"],
    )
    export.save_manifest(manifest, str(output_dir / "run_manifest.json"))

    logger.info("Workflow complete!")
    logger.info(f"Results exported to {output_dir}/")


if __name__ == "__main__":
    main()
