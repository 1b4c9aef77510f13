"""
JSON Schema Contract Validators

Модуль для валидации JSON данных согласно формальным JSON Schema контрактам.
Использует библиотеку jsonschema для проверки соответствия данных схемам.

Схемы:
- tick_samples.json (входной файл сэмплов, --input)
- volatility_config.json (файл конфигурации, --config)
- proof_artifact.json (выход prove / вход verify)
"""

import json
from pathlib import Path
from typing import Any, Dict

import jsonschema
from jsonschema import Draft202012Validator, ValidationError


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Загрузчик JSON Schema файлов.

    Схемы поставляются вместе с пакетом: contracts/schema/ рядом с модулем.
    """

    def __init__(self, schema_dir: Path | None = None):
        self._schema_dir = schema_dir or Path(__file__).parent / "schema"
        if not self._schema_dir.exists():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")

        # Кэш загруженных схем
        self._schemas: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Загрузка JSON Schema файла.

        Args:
            schema_name: Имя схемы без расширения (например, 'tick_samples')

        Returns:
            Загруженная схема как dict

        Raises:
            FileNotFoundError: Если файл схемы не найден
            ValueError: Если схема не проходит meta-validation
        """
        if schema_name in self._schemas:
            return self._schemas[schema_name]

        schema_path = self._schema_dir / f"{schema_name}.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")

        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)

        # Валидируем саму схему (meta-validation)
        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e}") from e

        self._schemas[schema_name] = schema
        return schema


# Глобальный экземпляр загрузчика
_SCHEMA_LOADER = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """
    Базовый класс для валидаторов контрактов.

    Инкапсулирует логику валидации данных против JSON Schema.
    """

    def __init__(self, schema_name: str):
        self.schema_name = schema_name
        self.schema = _SCHEMA_LOADER.load_schema(schema_name)
        self.validator = Draft202012Validator(self.schema)

    def validate(self, data: Any) -> None:
        """
        Валидация данных против схемы.

        Raises:
            ValidationError: Если данные не соответствуют схеме
        """
        self.validator.validate(data)

    def is_valid(self, data: Any) -> bool:
        """Проверка валидности данных без exception."""
        return self.validator.is_valid(data)

    def iter_errors(self, data: Any):
        """
        Итератор по всем ошибкам валидации.

        Yields:
            ValidationError объекты для каждой найденной ошибки
        """
        return self.validator.iter_errors(data)

    def error_summary(self, data: Any, limit: int = 5) -> str:
        """
        Краткое описание ошибок валидации для сообщений CLI.

        Пустая строка, если данные валидны.
        """
        messages = []
        for error in sorted(self.iter_errors(data), key=lambda e: list(e.absolute_path)):
            location = "/".join(str(p) for p in error.absolute_path) or "<root>"
            messages.append(f"{location}: {error.message}")
            if len(messages) >= limit:
                break
        return "; ".join(messages)


class TickSamplesValidator(ContractValidator):
    """Валидатор для файла сэмплов (JSON массив)."""

    def __init__(self):
        super().__init__("tick_samples")


class VolatilityConfigValidator(ContractValidator):
    """Валидатор для файла конфигурации."""

    def __init__(self):
        super().__init__("volatility_config")


class ProofArtifactValidator(ContractValidator):
    """Валидатор для артефакта доказательства."""

    def __init__(self):
        super().__init__("proof_artifact")


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def validate_tick_samples(data: Any) -> None:
    """
    Валидация массива сэмплов.

    Raises:
        ValidationError: Если данные не соответствуют схеме
    """
    TickSamplesValidator().validate(data)


def validate_volatility_config(data: Dict[str, Any]) -> None:
    """
    Валидация конфигурации.

    Raises:
        ValidationError: Если данные не соответствуют схеме
    """
    VolatilityConfigValidator().validate(data)


def validate_proof_artifact(data: Dict[str, Any]) -> None:
    """
    Валидация артефакта доказательства.

    Raises:
        ValidationError: Если данные не соответствуют схеме
    """
    ProofArtifactValidator().validate(data)


__all__ = [
    "SchemaLoader",
    "ContractValidator",
    "TickSamplesValidator",
    "VolatilityConfigValidator",
    "ProofArtifactValidator",
    "ValidationError",
    "validate_tick_samples",
    "validate_volatility_config",
    "validate_proof_artifact",
]
