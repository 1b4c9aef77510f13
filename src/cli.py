"""
CLI — rv-prover

Подкоманды:
    keygen  --config C [--degree D] [--keys-dir K] [--backend B]
    run     --config C (--input I | --synthetic SEED)
    prove   --config C (--input I | --synthetic SEED) [--keys-dir K] [--output O]
    verify  --artifact A [--keys-dir K] [--config C --input I]
    batch   --config C --input I1 I2 ... [--prove] [--keys-dir K]
    watch   --config C --directory D [--prove] [--max-polls N]

Результаты — JSON в stdout, логи — stderr.

Коды выхода:
    0 успех, 1 доказательство не прошло verify / прочая ошибка,
    2 вход/конфигурация, 3 переполнение, 4 расхождение, 5 backend
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Final, Optional, Sequence

import structlog
from pydantic import ValidationError

from src.core.contracts import ProofArtifactValidator
from src.core.domain.config import VolatilityConfig
from src.core.domain.proof import ProofArtifact
from src.core.domain.samples import TickSample
from src.core.errors import (
    ArithmeticOverflow,
    BackendFailure,
    DivergenceDefect,
    DivergenceWarning,
    InputError,
    ScaleMismatchError,
    VolatilityError,
)
from src.data.loader import load_config, load_tick_source, read_json_file
from src.data.synthetic import generate_synthetic_samples
from src.data.watcher import DirectoryWatcher
from src.prover import (
    DEFAULT_DEGREE,
    PROVING_KEY_FILE,
    VERIFYING_KEY_FILE,
    ProofSubmitter,
    create_backend,
    ensure_shape,
    generate_keys,
    load_proving_key,
    load_verifying_key,
    write_keys,
)
from src.settings import LOG_LEVELS, Settings, configure_logging, get_settings
from src.volatility.calculators.circuit import constraint_count_for
from src.volatility.pipeline import prove_window, run_batch, run_window

logger = structlog.get_logger(__name__)

EXIT_OK: Final[int] = 0
EXIT_FAILURE: Final[int] = 1
EXIT_INPUT: Final[int] = 2
EXIT_OVERFLOW: Final[int] = 3
EXIT_DIVERGENCE: Final[int] = 4
EXIT_BACKEND: Final[int] = 5


def exit_code_for(error: VolatilityError) -> int:
    """Код выхода по классу ошибки."""
    if isinstance(error, (DivergenceDefect, DivergenceWarning)):
        return EXIT_DIVERGENCE
    if isinstance(error, ArithmeticOverflow):
        return EXIT_OVERFLOW
    if isinstance(error, BackendFailure):
        return EXIT_BACKEND
    if isinstance(error, (InputError, ScaleMismatchError)):
        return EXIT_INPUT
    return EXIT_FAILURE


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2))


# =============================================================================
# HELPERS
# =============================================================================


def _keys_dir(args: argparse.Namespace, settings: Settings) -> Path:
    return args.keys_dir if args.keys_dir is not None else settings.keys_dir


def _load_window(args: argparse.Namespace, config: VolatilityConfig) -> list[TickSample]:
    if args.synthetic is not None:
        return generate_synthetic_samples(config.sample_count, seed=args.synthetic)
    return load_tick_source(args.input)


def _submitter(args: argparse.Namespace, settings: Settings, config: VolatilityConfig) -> ProofSubmitter:
    proving_key = load_proving_key(_keys_dir(args, settings) / PROVING_KEY_FILE)
    ensure_shape(proving_key, config.circuit_shape())
    backend = create_backend(proving_key.backend_kind, proving_key=proving_key)
    return ProofSubmitter(
        backend,
        timeout_sec=settings.submit_timeout_sec,
        max_retries=settings.max_retries,
        retry_backoff_sec=settings.retry_backoff_sec,
    )


# =============================================================================
# COMMANDS
# =============================================================================


def cmd_keygen(args: argparse.Namespace, settings: Settings) -> int:
    config = load_config(args.config)
    shape = config.circuit_shape()
    backend_kind = args.backend if args.backend is not None else settings.backend_kind
    proving_key, verifying_key = generate_keys(shape, degree=args.degree, backend_kind=backend_kind)
    pk_path, vk_path = write_keys(_keys_dir(args, settings), proving_key, verifying_key)
    _emit(
        {
            "keyId": proving_key.key_id,
            "backendKind": proving_key.backend_kind,
            "degree": proving_key.degree,
            "shapeId": shape.shape_id(),
            "constraintCount": constraint_count_for(shape),
            "provingKey": str(pk_path),
            "verifyingKey": str(vk_path),
        }
    )
    return EXIT_OK


def cmd_run(args: argparse.Namespace, settings: Settings) -> int:
    config = load_config(args.config)
    outcome = run_window(_load_window(args, config), config)
    _emit(outcome.to_dict())
    return EXIT_OK


def cmd_prove(args: argparse.Namespace, settings: Settings) -> int:
    config = load_config(args.config)
    samples = _load_window(args, config)
    with _submitter(args, settings, config) as submitter:
        outcome = prove_window(samples, config, submitter)

    if args.output is not None:
        args.output.write_text(
            outcome.artifact.model_dump_json(by_alias=True, indent=2), encoding="utf-8"
        )
        logger.info("artifact_written", path=str(args.output))
    _emit(outcome.to_dict())
    return EXIT_OK


def cmd_verify(args: argparse.Namespace, settings: Settings) -> int:
    data = read_json_file(args.artifact)
    problems = ProofArtifactValidator().error_summary(data)
    if problems:
        raise InputError(f"invalid proof artifact {args.artifact}: {problems}")
    try:
        artifact = ProofArtifact.model_validate(data)
    except ValidationError as e:
        raise InputError(f"invalid proof artifact {args.artifact}: {e}") from e

    verifying_key = load_verifying_key(_keys_dir(args, settings) / VERIFYING_KEY_FILE)
    backend = create_backend(verifying_key.backend_kind, verifying_key=verifying_key)

    expected = artifact.public_inputs
    if args.input is not None:
        if args.config is None:
            raise InputError("--input requires --config to recompute public inputs")
        config = load_config(args.config)
        ensure_shape(verifying_key, config.circuit_shape())
        expected = run_window(load_tick_source(args.input), config).trace.public_inputs

    valid = backend.verify(artifact, expected)
    _emit(
        {
            "valid": valid,
            "publicInputsDigest": artifact.public_inputs_digest,
            "volatilityRaw": artifact.public_inputs.volatility_raw,
            "sampleCount": artifact.public_inputs.sample_count,
        }
    )
    return EXIT_OK if valid else EXIT_FAILURE


def cmd_batch(args: argparse.Namespace, settings: Settings) -> int:
    config = load_config(args.config)
    windows = [load_tick_source(path) for path in args.input]

    if args.prove:
        with _submitter(args, settings, config) as submitter:
            results = run_batch(windows, config, submitter, max_workers=settings.batch_workers)
    else:
        results = run_batch(windows, config, max_workers=settings.batch_workers)

    _emit([r.to_dict() for r in results])
    failures = [r.error for r in results if r.error is not None]
    return exit_code_for(failures[0]) if failures else EXIT_OK


def cmd_watch(args: argparse.Namespace, settings: Settings) -> int:
    config = load_config(args.config)
    submitter = _submitter(args, settings, config) if args.prove else None
    watcher = DirectoryWatcher(
        args.directory,
        config.sample_count,
        poll_interval_sec=args.interval or settings.watch_poll_interval_sec,
    )

    def on_window(samples: list[TickSample]) -> None:
        if submitter is None:
            outcome = run_window(samples, config)
        else:
            outcome = prove_window(samples, config, submitter)
        print(json.dumps(outcome.to_dict()), flush=True)

    try:
        windows = watcher.watch(on_window, max_polls=args.max_polls)
    finally:
        if submitter is not None:
            submitter.close()
    logger.info("watch_stopped", windows=windows)
    return EXIT_OK


# =============================================================================
# PARSER
# =============================================================================


def _add_input_args(parser: argparse.ArgumentParser) -> None:
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--input", type=Path, help="Sample file (.json, .csv or .jsonl)")
    source.add_argument(
        "--synthetic", type=int, metavar="SEED", help="Use seeded synthetic ticks"
    )


def _add_keys_dir(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--keys-dir", type=Path, default=None, help="Key directory")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rv-prover",
        description="Fixed-point realized volatility of Uniswap V3 ticks with proof generation",
    )
    parser.add_argument("--log-level", type=str.upper, choices=LOG_LEVELS, default=None)
    parser.add_argument("--log-json", action="store_true", help="Render logs as JSON")
    sub = parser.add_subparsers(dest="command", required=True)

    keygen = sub.add_parser("keygen", help="Generate proving/verifying keys for a circuit shape")
    keygen.add_argument("--config", type=Path, required=True)
    keygen.add_argument("--degree", type=int, default=DEFAULT_DEGREE, help="log2 of circuit rows")
    keygen.add_argument(
        "--backend", type=str, default=None, help="Proof backend kind (default: RV_BACKEND_KIND)"
    )
    _add_keys_dir(keygen)
    keygen.set_defaults(handler=cmd_keygen)

    run = sub.add_parser("run", help="Compute and cross-check volatility")
    run.add_argument("--config", type=Path, required=True)
    _add_input_args(run)
    run.set_defaults(handler=cmd_run)

    prove = sub.add_parser("prove", help="Compute, cross-check and prove volatility")
    prove.add_argument("--config", type=Path, required=True)
    _add_input_args(prove)
    _add_keys_dir(prove)
    prove.add_argument("--output", type=Path, default=None, help="Write artifact JSON here")
    prove.set_defaults(handler=cmd_prove)

    verify = sub.add_parser("verify", help="Verify a proof artifact")
    verify.add_argument("--artifact", type=Path, required=True)
    verify.add_argument("--config", type=Path, default=None)
    verify.add_argument("--input", type=Path, default=None, help="Recompute expected public inputs")
    _add_keys_dir(verify)
    verify.set_defaults(handler=cmd_verify)

    batch = sub.add_parser("batch", help="Process independent windows in parallel")
    batch.add_argument("--config", type=Path, required=True)
    batch.add_argument("--input", type=Path, nargs="+", required=True)
    batch.add_argument("--prove", action="store_true")
    _add_keys_dir(batch)
    batch.set_defaults(handler=cmd_batch)

    watch = sub.add_parser("watch", help="Poll a substream directory for new windows")
    watch.add_argument("--config", type=Path, required=True)
    watch.add_argument("--directory", type=Path, required=True)
    watch.add_argument("--prove", action="store_true")
    watch.add_argument("--max-polls", type=int, default=None)
    watch.add_argument("--interval", type=float, default=None, help="Seconds between polls")
    _add_keys_dir(watch)
    watch.set_defaults(handler=cmd_watch)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"invalid RV_* environment settings: {e}", file=sys.stderr)
        return EXIT_INPUT

    configure_logging(args.log_level or settings.log_level, args.log_json or settings.log_json)
    logger.debug("settings_loaded", **settings.model_dump(mode="json"))

    try:
        return args.handler(args, settings)
    except VolatilityError as e:
        logger.error(
            "command_failed",
            command=args.command,
            error_type=type(e).__name__,
            error=str(e),
        )
        return exit_code_for(e)


if __name__ == "__main__":
    sys.exit(main())
