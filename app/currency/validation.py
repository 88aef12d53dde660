"""
货币与用户偏好校验
"""
import math
from dataclasses import dataclass, field
from typing import List

from loguru import logger

SUPPORTED_CURRENCIES = ['EUR', 'USD', 'GBP', 'NOK']
SUPPORTED_PRICE_SOURCES = ['cardmarket', 'tcgplayer']

DEFAULT_CURRENCY = 'EUR'
DEFAULT_PRICE_SOURCE = 'cardmarket'


class PreferenceValidationError(ValueError):
    """严格模式下偏好设置无效"""

    def __init__(self, errors):
        super().__init__(f"Invalid user preferences: {', '.join(errors)}")
        self.errors = errors


@dataclass
class ValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def is_valid_currency(currency):
    return currency in SUPPORTED_CURRENCIES


def is_valid_price_source(source):
    return source in SUPPORTED_PRICE_SOURCES


def validate_currency(currency):
    if not isinstance(currency, str):
        return ValidationResult(False, ['Currency must be a string'])

    if not currency.strip():
        return ValidationResult(False, ['Currency cannot be empty'])

    upper = currency.upper()
    if not is_valid_currency(upper):
        return ValidationResult(False, [
            f"Currency '{currency}' is not supported. Supported currencies: {', '.join(SUPPORTED_CURRENCIES)}"
        ])

    warnings = []
    if currency != upper:
        warnings.append(f"Currency was converted to uppercase: {currency} -> {upper}")
    return ValidationResult(True, [], warnings)


def validate_price_source(source):
    if not isinstance(source, str):
        return ValidationResult(False, ['Price source must be a string'])

    if not source.strip():
        return ValidationResult(False, ['Price source cannot be empty'])

    lower = source.lower()
    if not is_valid_price_source(lower):
        return ValidationResult(False, [
            f"Price source '{source}' is not supported. Supported sources: {', '.join(SUPPORTED_PRICE_SOURCES)}"
        ])

    warnings = []
    if source != lower:
        warnings.append(f"Price source was converted to lowercase: {source} -> {lower}")
    return ValidationResult(True, [], warnings)


def validate_user_preferences(preferences):
    if not isinstance(preferences, dict):
        return ValidationResult(False, ['Preferences must be an object'])

    errors, warnings = [], []

    if 'preferred_currency' in preferences:
        result = validate_currency(preferences['preferred_currency'])
        errors += result.errors
        warnings += result.warnings
    else:
        warnings.append('Missing preferred_currency, will use default')

    if 'preferred_price_source' in preferences:
        result = validate_price_source(preferences['preferred_price_source'])
        errors += result.errors
        warnings += result.warnings
    else:
        warnings.append('Missing preferred_price_source, will use default')

    return ValidationResult(not errors, errors, warnings)


def sanitize_user_preferences(preferences, strict_mode=False):
    """
    清洗用户偏好，总是返回有效值

    Returns:
        {'preferred_currency', 'preferred_price_source', 'hadErrors', 'appliedDefaults'}

    Raises:
        PreferenceValidationError: strict_mode 且校验失败
    """
    validation = validate_user_preferences(preferences)
    had_errors = bool(validation.errors)

    if had_errors:
        logger.warning(f"用户偏好校验错误: {validation.errors}")
        if strict_mode:
            raise PreferenceValidationError(validation.errors)

    if validation.warnings:
        logger.debug(f"用户偏好校验警告: {validation.warnings}")

    currency = DEFAULT_CURRENCY
    price_source = DEFAULT_PRICE_SOURCE
    applied = []
    prefs = preferences if isinstance(preferences, dict) else {}

    if 'preferred_currency' in prefs and validate_currency(prefs['preferred_currency']).is_valid:
        currency = prefs['preferred_currency'].upper()
    else:
        applied.append(f"currency ({DEFAULT_CURRENCY})")

    if 'preferred_price_source' in prefs and validate_price_source(prefs['preferred_price_source']).is_valid:
        price_source = prefs['preferred_price_source'].lower()
    else:
        applied.append(f"price source ({DEFAULT_PRICE_SOURCE})")

    if applied:
        logger.info(f"使用默认偏好: {', '.join(applied)}")

    return {
        'preferred_currency': currency,
        'preferred_price_source': price_source,
        'hadErrors': had_errors,
        'appliedDefaults': applied
    }


def validate_conversion_params(amount, from_currency, to_currency):
    errors, warnings = [], []

    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        errors.append('Amount must be a number')
    elif not math.isfinite(amount):
        errors.append('Amount must be a finite number')
    elif amount < 0:
        errors.append('Amount cannot be negative')

    from_result = validate_currency(from_currency)
    to_result = validate_currency(to_currency)
    errors += from_result.errors + to_result.errors
    warnings += from_result.warnings + to_result.warnings

    if from_result.is_valid and to_result.is_valid and from_currency == to_currency:
        warnings.append('Converting between the same currencies (no conversion needed)')

    return ValidationResult(not errors, errors, warnings)


def get_safe_currency(currency):
    if validate_currency(currency).is_valid:
        return currency.upper()
    return DEFAULT_CURRENCY


def get_safe_price_source(source):
    if validate_price_source(source).is_valid:
        return source.lower()
    return DEFAULT_PRICE_SOURCE
