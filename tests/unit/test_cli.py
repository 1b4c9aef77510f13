"""
Тесты для CLI rv-prover

Проверяет:
1. run / keygen / prove / verify / batch / watch end-to-end
2. Коды выхода по классам ошибок
3. Ошибки окружения RV_*
"""

import json

import pytest

from src.cli import (
    EXIT_BACKEND,
    EXIT_DIVERGENCE,
    EXIT_FAILURE,
    EXIT_INPUT,
    EXIT_OK,
    EXIT_OVERFLOW,
    exit_code_for,
    main,
)
from src.core.errors import (
    ArithmeticOverflow,
    BackendFailure,
    ConfigurationError,
    DivergenceDefect,
    DivergenceWarning,
    FixedPointDivisionByZero,
    InputError,
    ScaleMismatchError,
    VolatilityError,
)
from src.data import dump_samples, generate_synthetic_samples


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Без .env и RV_* из окружения разработчика."""
    monkeypatch.chdir(tmp_path)
    for name in ("RV_LOG_LEVEL", "RV_LOG_JSON", "RV_KEYS_DIR", "RV_BACKEND_KIND"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def write_config(tmp_path):
    def _write(name: str = "config.json", **fields) -> str:
        path = tmp_path / name
        path.write_text(json.dumps(fields), encoding="utf-8")
        return str(path)

    return _write


@pytest.fixture
def keys_dir(tmp_path):
    return str(tmp_path / "keys")


def _output(capsys):
    return json.loads(capsys.readouterr().out)


# =============================================================================
# RUN
# =============================================================================


class TestRun:
    """Команда run"""

    def test_synthetic(self, write_config, capsys) -> None:
        config = write_config(sample_count=16)
        assert main(["run", "--config", config, "--synthetic", "3"]) == EXIT_OK

        data = _output(capsys)
        assert data["sampleCount"] == 16
        assert data["report"]["optimizedVsCircuit"] == 0
        assert data["report"]["withinTolerance"] is True

    def test_input_file(self, tmp_path, write_config, capsys) -> None:
        config = write_config(sample_count=5, scale_bits=0)
        ticks = tmp_path / "ticks.csv"
        ticks.write_text("tick\n0\n2\n0\n2\n0\n", encoding="utf-8")

        assert main(["run", "--config", config, "--input", str(ticks)]) == EXIT_OK
        assert _output(capsys)["report"]["circuit"]["raw"] == "2"

    def test_sample_count_mismatch(self, tmp_path, write_config) -> None:
        config = write_config(sample_count=6)
        ticks = tmp_path / "ticks.csv"
        ticks.write_text("tick\n0\n2\n0\n", encoding="utf-8")
        assert main(["run", "--config", config, "--input", str(ticks)]) == EXIT_INPUT

    def test_overflow(self, tmp_path, write_config) -> None:
        config = write_config(sample_count=5, scale_bits=0, value_bits=16, accumulator_bits=32)
        ticks = tmp_path / "ticks.csv"
        ticks.write_text("tick\n0\n30000\n0\n30000\n0\n", encoding="utf-8")
        assert main(["run", "--config", config, "--input", str(ticks)]) == EXIT_OVERFLOW

    def test_invalid_config(self, write_config) -> None:
        config = write_config(sample_count=1)
        assert main(["run", "--config", config, "--synthetic", "1"]) == EXIT_INPUT

    def test_invalid_environment(self, write_config, monkeypatch, capsys) -> None:
        monkeypatch.setenv("RV_LOG_LEVEL", "LOUD")
        config = write_config(sample_count=4)
        assert main(["run", "--config", config, "--synthetic", "1"]) == EXIT_INPUT
        assert "RV_" in capsys.readouterr().err


# =============================================================================
# KEYGEN / PROVE / VERIFY
# =============================================================================


class TestProveAndVerify:
    """keygen → prove → verify"""

    def test_round_trip(self, tmp_path, write_config, keys_dir, capsys) -> None:
        config = write_config(sample_count=16)
        artifact_path = str(tmp_path / "artifact.json")

        assert main(["keygen", "--config", config, "--keys-dir", keys_dir]) == EXIT_OK
        keygen = _output(capsys)
        assert keygen["degree"] == 17
        assert keygen["constraintCount"] <= 1 << 17

        assert main(
            ["prove", "--config", config, "--synthetic", "3", "--keys-dir", keys_dir, "--output", artifact_path]
        ) == EXIT_OK
        proved = _output(capsys)
        assert proved["artifact"]["shapeId"] == keygen["shapeId"]

        assert main(["verify", "--artifact", artifact_path, "--keys-dir", keys_dir]) == EXIT_OK
        verified = _output(capsys)
        assert verified["valid"] is True
        assert verified["volatilityRaw"] == proved["artifact"]["publicInputs"]["volatilityRaw"]

    def test_verify_recomputes_public_inputs(self, tmp_path, write_config, keys_dir, capsys) -> None:
        config = write_config(sample_count=16)
        window = tmp_path / "window.json"
        dump_samples(generate_synthetic_samples(16, seed=3), window)
        other = tmp_path / "other.json"
        dump_samples(generate_synthetic_samples(16, seed=4), other)
        artifact_path = str(tmp_path / "artifact.json")

        main(["keygen", "--config", config, "--keys-dir", keys_dir])
        main(["prove", "--config", config, "--input", str(window), "--keys-dir", keys_dir, "--output", artifact_path])
        capsys.readouterr()

        args = ["verify", "--artifact", artifact_path, "--keys-dir", keys_dir, "--config", config]
        assert main(args + ["--input", str(window)]) == EXIT_OK
        assert main(args + ["--input", str(other)]) == EXIT_FAILURE

    def test_tampered_artifact_rejected(self, tmp_path, write_config, keys_dir, capsys) -> None:
        config = write_config(sample_count=16)
        artifact_path = tmp_path / "artifact.json"
        main(["keygen", "--config", config, "--keys-dir", keys_dir])
        main(["prove", "--config", config, "--synthetic", "3", "--keys-dir", keys_dir, "--output", str(artifact_path)])
        capsys.readouterr()

        data = json.loads(artifact_path.read_text(encoding="utf-8"))
        data["publicInputs"]["volatilityRaw"] += 1
        artifact_path.write_text(json.dumps(data), encoding="utf-8")

        assert main(["verify", "--artifact", str(artifact_path), "--keys-dir", keys_dir]) == EXIT_FAILURE
        assert _output(capsys)["valid"] is False

    def test_malformed_artifact(self, tmp_path, keys_dir) -> None:
        artifact_path = tmp_path / "artifact.json"
        artifact_path.write_text(json.dumps({"backendKind": "digest"}), encoding="utf-8")
        assert main(["verify", "--artifact", str(artifact_path), "--keys-dir", keys_dir]) == EXIT_INPUT

    def test_shape_mismatch(self, write_config, keys_dir) -> None:
        main(["keygen", "--config", write_config("a.json", sample_count=16), "--keys-dir", keys_dir])
        other = write_config("b.json", sample_count=17)
        assert main(["prove", "--config", other, "--synthetic", "1", "--keys-dir", keys_dir]) == EXIT_INPUT

    def test_missing_keys(self, write_config, keys_dir) -> None:
        config = write_config(sample_count=16)
        assert main(["prove", "--config", config, "--synthetic", "1", "--keys-dir", keys_dir]) == EXIT_INPUT

    def test_degree_too_small(self, write_config, keys_dir) -> None:
        config = write_config(sample_count=16)
        assert main(["keygen", "--config", config, "--degree", "4", "--keys-dir", keys_dir]) == EXIT_INPUT

    def test_unknown_backend_rejected_at_keygen(self, tmp_path, write_config, keys_dir) -> None:
        config = write_config(sample_count=16)
        assert main(["keygen", "--config", config, "--backend", "remote", "--keys-dir", keys_dir]) == EXIT_INPUT
        assert not (tmp_path / "keys").exists()

    def test_backend_from_environment(self, tmp_path, write_config, keys_dir, monkeypatch) -> None:
        monkeypatch.setenv("RV_BACKEND_KIND", "remote")
        config = write_config(sample_count=16)
        assert main(["keygen", "--config", config, "--keys-dir", keys_dir]) == EXIT_INPUT
        assert not (tmp_path / "keys").exists()

    def test_backend_flag_overrides_environment(self, write_config, keys_dir, monkeypatch, capsys) -> None:
        monkeypatch.setenv("RV_BACKEND_KIND", "remote")
        config = write_config(sample_count=16)
        assert main(["keygen", "--config", config, "--backend", "digest", "--keys-dir", keys_dir]) == EXIT_OK
        assert _output(capsys)["backendKind"] == "digest"


# =============================================================================
# BATCH / WATCH
# =============================================================================


class TestBatchAndWatch:
    """Команды batch и watch"""

    def test_batch_partial_failure(self, tmp_path, write_config, capsys) -> None:
        config = write_config(sample_count=8)
        good = tmp_path / "good.json"
        dump_samples(generate_synthetic_samples(8, seed=1), good)
        short = tmp_path / "short.json"
        dump_samples(generate_synthetic_samples(5, seed=2), short)

        assert main(["batch", "--config", config, "--input", str(good), str(short)]) == EXIT_INPUT
        results = _output(capsys)
        assert [r["ok"] for r in results] == [True, False]
        assert results[1]["errorType"] == "InputError"

    def test_batch_with_proofs(self, tmp_path, write_config, keys_dir, capsys) -> None:
        config = write_config(sample_count=8)
        paths = []
        for seed in range(2):
            path = tmp_path / f"w{seed}.json"
            dump_samples(generate_synthetic_samples(8, seed=seed), path)
            paths.append(str(path))
        main(["keygen", "--config", config, "--keys-dir", keys_dir])
        capsys.readouterr()

        assert main(["batch", "--config", config, "--input", *paths, "--prove", "--keys-dir", keys_dir]) == EXIT_OK
        assert all("artifact" in r for r in _output(capsys))

    def test_watch(self, tmp_path, write_config, capsys) -> None:
        config = write_config(sample_count=3)
        blocks = tmp_path / "blocks"
        blocks.mkdir()
        lines = [json.dumps({"evt_block_num": b, "tick": t}) for b, t in [(1, 10), (2, 14), (3, 9)]]
        (blocks / "1-3.jsonl").write_text("\n".join(lines) + "\n", encoding="utf-8")

        args = ["watch", "--config", config, "--directory", str(blocks), "--max-polls", "2", "--interval", "0.01"]
        assert main(args) == EXIT_OK
        out_lines = [line for line in capsys.readouterr().out.splitlines() if line.strip()]
        assert len(out_lines) == 1
        assert json.loads(out_lines[0])["sampleCount"] == 3


# =============================================================================
# EXIT CODES
# =============================================================================


@pytest.mark.parametrize(
    "error,code",
    [
        (InputError("x"), EXIT_INPUT),
        (ConfigurationError("x"), EXIT_INPUT),
        (ScaleMismatchError("x"), EXIT_INPUT),
        (ArithmeticOverflow("x"), EXIT_OVERFLOW),
        (FixedPointDivisionByZero("x"), EXIT_OVERFLOW),
        (DivergenceDefect("x"), EXIT_DIVERGENCE),
        (DivergenceWarning("x"), EXIT_DIVERGENCE),
        (BackendFailure("x"), EXIT_BACKEND),
        (VolatilityError("x"), EXIT_FAILURE),
    ],
)
def test_exit_code_for(error, code):
    assert exit_code_for(error) == code
