"""
Командная строка нечёткого k-means.

Режимы работы:
1. datasets — генерация синтетического датасета
2. cluster  — итерации нечёткого k-means и (опционально) разметка точек
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

from fuzzykmeans.config import FuzzyKMeansConfig
from fuzzykmeans.errors import ClusteringError


def run_datasets_generation(
    n_points: int,
    n_dims: int,
    n_clusters: int,
    output: Path,
    seed: int = 42,
    cluster_std: float = 1.5,
) -> Path:
    """
    Генерирует синтетический датасет в текстовом формате.

    Args:
        n_points: Количество точек
        n_dims: Размерность
        n_clusters: Количество облаков (и начальных центров в файле)
        output: Путь к файлу датасета
        seed: Seed генератора
        cluster_std: Разброс облаков
    """
    from scripts.generate_datasets import DatasetConfig, DatasetGenerator

    generator = DatasetGenerator(base_seed=seed, datasets_dir=output.parent)
    config = DatasetConfig(N=n_points, D=n_dims, K=n_clusters, cluster_std=cluster_std)
    return generator.generate_and_save(config, filename=output.name)


def _write_ndjson(path: Path, records: List[Dict[str, Any]]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        for rec in records:
            f.write(json.dumps(rec, ensure_ascii=False))
            f.write("\n")


def build_config(args: argparse.Namespace) -> FuzzyKMeansConfig:
    """Конфигурация из JSON-файла (если задан), перекрытая флагами командной строки."""
    raw: Dict[str, Any] = {}
    if args.config:
        with open(args.config, "r", encoding="utf-8") as f:
            raw = json.load(f)

    overrides = {
        "m": args.m,
        "convergence_delta": args.delta,
        "max_iterations": args.max_iterations,
        "distance_measure": args.distance,
        "method": args.method,
        "batch_size": args.batch_size,
        "threshold": args.threshold,
    }
    raw.update({k: v for k, v in overrides.items() if v is not None})
    if args.clustering:
        raw["run_clustering"] = True
    if args.threshold is not None:
        raw["emit_most_likely"] = False
    if args.emit_most_likely:
        raw["emit_most_likely"] = True

    mp = dict(raw.get("mp", {}))
    if args.processes is not None:
        mp["n_processes"] = args.processes
    if args.partitions is not None:
        mp["n_partitions"] = args.partitions
    if mp:
        raw["mp"] = mp

    return FuzzyKMeansConfig.from_dict(raw)


def run_clustering(args: argparse.Namespace) -> int:
    """Полный цикл: загрузка, посев, итерации, разметка, отчёты."""
    from fuzzykmeans.core.engine import FuzzyKMeans
    from fuzzykmeans.data import Dataset, random_seeds, validate_clusters, validate_dataset
    from fuzzykmeans.metrics.quality import fuzzy_objective, partition_coefficient
    from fuzzykmeans.core.distance import checked_pairwise
    from fuzzykmeans.core.membership import centers_of
    from fuzzykmeans.utils.logging import setup_logger

    logger = setup_logger(logging.DEBUG if args.verbose else logging.INFO)

    try:
        config = build_config(args)
        dataset = Dataset(args.input)
    except (ClusteringError, OSError, ValueError) as e:
        # нет файла, битый JSON или нечисловое значение в датасете
        logger.error(f"Cannot load input: {e}")
        return 1

    try:
        validate_dataset(dataset)
        X = dataset.X

        if args.k is not None:
            clusters = random_seeds(X, args.k, seed=args.seed)
            logger.info(f"Sampled {len(clusters)} random seeds (seed={args.seed})")
        else:
            clusters = dataset.seed_clusters()
            logger.info(f"Using {len(clusters)} centroids from {args.input}")
        validate_clusters(clusters, X.shape[1])

        output = Path(args.output)
        output.mkdir(parents=True, exist_ok=True)
        snapshots_path = output / "clusters.ndjson"
        snapshot_records: List[Dict[str, Any]] = []

        def snapshot_sink(iteration: int, snapshot: list) -> None:
            for cluster in snapshot:
                snapshot_records.append({"iteration": iteration, **cluster.to_dict()})

        model = FuzzyKMeans(config, logger=logger, snapshot_sink=snapshot_sink)
        result = model.run(X, clusters, point_ids=dataset.point_ids)
    except ClusteringError as e:
        logger.error(f"Clustering failed: {e}")
        return 1

    _write_ndjson(snapshots_path, snapshot_records)
    logger.info(f"Cluster snapshots saved to {snapshots_path}")

    if result.labels:
        labels_path = output / "clustered_points.ndjson"
        _write_ndjson(labels_path, [rec.to_dict() for rec in result.labels])
        logger.info(f"Point labels saved to {labels_path}")

    weights = model.assigner.memberships(X, result.clusters)
    distances = checked_pairwise(model.measure, X, centers_of(result.clusters))
    logger.info(
        f"Finished: iterations={result.iterations}, converged={result.converged}, "
        f"J_m={fuzzy_objective(weights, distances, config.m):.6g}, "
        f"partition_coefficient={partition_coefficient(weights):.4f}, "
        f"T_iter_total={model.timings.iter_total:.6f}s"
    )

    if args.plot:
        from scripts.visualize_clusters import plot_fuzzy_clusters

        plot_path = plot_fuzzy_clusters(X, result.clusters, weights, output / "clusters.png")
        logger.info(f"Plot saved to {plot_path}")

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Нечёткий k-means: последовательный и распределённый режимы",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Примеры использования:

  # Генерация датасета
  python main.py datasets --n 1000 --d 2 --k 3 --output datasets/blobs.txt

  # Кластеризация с центрами из файла и разметкой точек
  python main.py cluster --input datasets/blobs.txt --output out --clustering

  # Распределённый режим на 4 процессах, порог принадлежности 0.3
  python main.py cluster --input datasets/blobs.txt --output out \\
      --method mapreduce --processes 4 --clustering --threshold 0.3
        """,
    )
    subparsers = parser.add_subparsers(dest="mode", help="Режим работы")

    datasets_parser = subparsers.add_parser("datasets", help="Генерация синтетического датасета")
    datasets_parser.add_argument("--n", type=int, default=1000, help="Количество точек")
    datasets_parser.add_argument("--d", type=int, default=2, help="Размерность")
    datasets_parser.add_argument("--k", type=int, default=3, help="Количество облаков")
    datasets_parser.add_argument("--cluster-std", type=float, default=1.5, help="Разброс облаков")
    datasets_parser.add_argument("--seed", type=int, default=42, help="Seed генератора")
    datasets_parser.add_argument(
        "--output", type=str, default="datasets/blobs.txt", help="Путь к файлу датасета"
    )

    cluster_parser = subparsers.add_parser("cluster", help="Нечёткая кластеризация датасета")
    cluster_parser.add_argument("--input", type=str, required=True, help="Файл датасета")
    cluster_parser.add_argument("--output", type=str, required=True, help="Директория результатов")
    cluster_parser.add_argument("--config", type=str, default=None, help="JSON-файл конфигурации")
    cluster_parser.add_argument(
        "--k", type=int, default=None,
        help="Случайно выбрать k точек как начальные кластеры (иначе — центры из файла)",
    )
    cluster_parser.add_argument("--seed", type=int, default=None, help="Seed случайного посева")
    cluster_parser.add_argument("--m", type=float, default=None, help="Параметр размытости (> 1)")
    cluster_parser.add_argument("--delta", type=float, default=None, help="Порог сходимости")
    cluster_parser.add_argument("--max-iterations", type=int, default=None, help="Лимит итераций")
    cluster_parser.add_argument("--distance", type=str, default=None, help="Имя меры расстояния")
    cluster_parser.add_argument(
        "--method", type=str, choices=["sequential", "mapreduce"], default=None,
        help="Режим выполнения",
    )
    cluster_parser.add_argument("--processes", type=int, default=None, help="Число процессов")
    cluster_parser.add_argument("--partitions", type=int, default=None, help="Число партиций")
    cluster_parser.add_argument("--batch-size", type=int, default=None, help="Размер блока точек")
    cluster_parser.add_argument(
        "--clustering", action="store_true", help="Разметить точки после итераций"
    )
    policy = cluster_parser.add_mutually_exclusive_group()
    policy.add_argument(
        "--emit-most-likely", action="store_true",
        help="Выводить только наиболее вероятный кластер (по умолчанию)",
    )
    policy.add_argument(
        "--threshold", type=float, default=None,
        help="Выводить все кластеры с весом выше порога",
    )
    cluster_parser.add_argument("--plot", action="store_true", help="Сохранить 2D-график")
    cluster_parser.add_argument("--verbose", action="store_true", help="DEBUG-логирование")
    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.mode == "datasets":
        run_datasets_generation(
            n_points=args.n,
            n_dims=args.d,
            n_clusters=args.k,
            output=Path(args.output),
            seed=args.seed,
            cluster_std=args.cluster_std,
        )
        return 0
    if args.mode == "cluster":
        return run_clustering(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
