"""
Pytest configuration and shared fixtures.

Provides synthetic annotated matrices with realistic shapes and phenotype
tables for the container, I/O and CLI test suites.
"""

import numpy as np
import pandas as pd
import pytest

from exprset.core.annotated_matrix import AnnotatedMatrix
from exprset.core.metadata import ExperimentMetadata


def generate_synthetic_expression_set(
    n_features: int,
    n_samples: int,
    n_channels: int = 1,
    seed: int = 42,
) -> AnnotatedMatrix:
    """
    Generate a synthetic log-scale expression set with annotation.

    Args:
        n_features: Number of probe sets (rows)
        n_samples: Number of samples (columns)
        n_channels: 1 gives 'exprs'; 2 adds a matching 'se.exprs' channel
        seed: Random seed for reproducibility

    Returns:
        AnnotatedMatrix with sex/age/type sample fields and
        symbol/chromosome feature fields
    """
    rng = np.random.RandomState(seed)

    matrices = {'exprs': rng.normal(loc=8.0, scale=2.0, size=(n_features, n_samples))}
    if n_channels > 1:
        matrices['se.exprs'] = rng.gamma(shape=2.0, scale=0.1, size=(n_features, n_samples))

    feature_names = [f"{1000 + i}_at" for i in range(n_features)]
    sample_names = [f"GSM{5000 + j}" for j in range(n_samples)]

    col_annotation = pd.DataFrame({
        'sex': ['Female' if j % 2 == 0 else 'Male' for j in range(n_samples)],
        'age': rng.randint(20, 80, size=n_samples),
        'type': ['Case' if j % 3 == 0 else 'Control' for j in range(n_samples)],
    })
    row_annotation = pd.DataFrame({
        'symbol': [f"GENE{i}" for i in range(n_features)],
        'chromosome': [str(1 + i % 22) for i in range(n_features)],
    })

    experiment = ExperimentMetadata(
        title="Synthetic airway epithelium study",
        name="Pierre Fermat",
        lab="Francis Galton Lab",
        pubmed_ids=["12345678"],
    )

    return AnnotatedMatrix(
        matrices,
        row_annotation=row_annotation,
        col_annotation=col_annotation,
        feature_names=feature_names,
        sample_names=sample_names,
        experiment=experiment,
        platform="hgu95av2",
    )


@pytest.fixture
def scenario_matrix():
    """3 features x 4 samples with the integer matrix 1..12."""
    expr = np.array([[1, 2, 3, 4], [5, 6, 7, 8], [9, 10, 11, 12]])
    pheno = pd.DataFrame({
        'sex': ['F', 'M', 'M', 'F'],
        'age': [34, 51, 28, 62],
    })
    genes = pd.DataFrame({'symbol': ['TP53', 'BRCA1', 'SOD1']})
    return AnnotatedMatrix(
        {'expr': expr},
        row_annotation=genes,
        col_annotation=pheno,
        feature_names=['g1', 'g2', 'g3'],
        sample_names=['s1', 's2', 's3', 's4'],
    )


@pytest.fixture
def small_set():
    """Small expression set (50 features x 12 samples) for fast unit tests."""
    return generate_synthetic_expression_set(n_features=50, n_samples=12, seed=42)


@pytest.fixture
def two_channel_set():
    """Two-channel expression set (exprs + se.exprs), 30 x 10."""
    return generate_synthetic_expression_set(n_features=30, n_samples=10, n_channels=2, seed=7)


def write_expression_files(matrix: AnnotatedMatrix, directory, sep: str = '\t', suffix: str = 'tsv'):
    """
    Write a matrix as the plain tables load_annotated_matrix reads.

    Returns:
        Dict with 'exprs', 'samples', 'features' paths
    """
    paths = {
        'exprs': directory / f"exprs.{suffix}",
        'samples': directory / f"pheno.{suffix}",
        'features': directory / f"features.{suffix}",
    }
    matrix.frame(matrix.channel_names[0]).to_csv(paths['exprs'], sep=sep)
    matrix.col_annotation.to_csv(paths['samples'], sep=sep)
    matrix.row_annotation.to_csv(paths['features'], sep=sep)
    return paths
