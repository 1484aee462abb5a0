"""
Exception classes for jolly-jax.

Provides rich error information with actionable suggestions and documentation links.
"""

from typing import List, Optional, Dict, Any


class JollyJaxError(Exception):
    """
    Base exception class for jolly-jax with rich error information.

    Provides structured error information including suggestions for resolution
    and links to relevant documentation.
    """

    def __init__(
        self,
        message: str,
        suggestions: Optional[List[str]] = None,
        documentation_link: Optional[str] = None,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        self.suggestions = suggestions or []
        self.documentation_link = documentation_link
        self.error_code = error_code
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return formatted error message with suggestions."""
        message = super().__str__()

        if self.error_code:
            message = f"[{self.error_code}] {message}"

        if self.suggestions:
            message += "\n\nSuggestions:"
            for i, suggestion in enumerate(self.suggestions, 1):
                message += f"\n  {i}. {suggestion}"

        if self.documentation_link:
            message += f"\n\nDocumentation: {self.documentation_link}"

        return message


class DataFormatError(JollyJaxError):
    """Exception raised for encounter data that cannot be loaded."""

    def __init__(
        self,
        detected_format: Optional[str] = None,
        expected_formats: Optional[List[str]] = None,
        specific_issue: Optional[str] = None,
        suggestions: Optional[List[str]] = None,
        **kwargs
    ):
        if detected_format and expected_formats:
            message = f"Unsupported data format: {detected_format}"
            default_suggestions = [
                f"Convert your data to one of: {', '.join(expected_formats)}",
                "Check column names and data structure",
                "Verify encounter history format (should be 0s and 1s)",
            ]
        elif specific_issue:
            message = f"Data format issue: {specific_issue}"
            default_suggestions = [
                "Check your data structure and column names",
                "Ensure encounter histories contain only 0s and 1s",
                "Ensure every history has the same number of occasions",
            ]
        else:
            message = "Data format validation failed"
            default_suggestions = [
                "Check the data format documentation",
                "Validate your input data structure",
            ]

        kwargs.setdefault("error_code", "DATA_FORMAT")

        super().__init__(
            message=message,
            suggestions=suggestions or default_suggestions,
            documentation_link="https://docs.jolly-jax.org/data-formats",
            context={
                "detected_format": detected_format,
                "expected_formats": expected_formats,
                "specific_issue": specific_issue,
            },
            **kwargs
        )


class ModelSpecificationError(JollyJaxError):
    """Exception raised for model specification issues."""

    def __init__(
        self,
        parameter: Optional[str] = None,
        reason: Optional[str] = None,
        **kwargs
    ):
        if parameter and reason:
            message = f"Invalid specification for '{parameter}': {reason}"
        elif reason:
            message = f"Model specification error: {reason}"
        else:
            message = "Model specification error"

        suggestions = kwargs.pop('suggestions', None) or [
            "Check the shapes of the hyperparameter arrays",
            "gamma needs one value per occasion, epsilon one per interval",
            "Review model specification documentation",
        ]

        super().__init__(
            message=message,
            suggestions=suggestions,
            documentation_link="https://docs.jolly-jax.org/model-specification",
            error_code="MODEL_SPEC",
            context={"parameter": parameter, "reason": reason},
            **kwargs
        )


class SamplingError(JollyJaxError):
    """Exception raised when the posterior sampler fails."""

    def __init__(
        self,
        sampler: Optional[str] = None,
        reason: Optional[str] = None,
        num_divergences: Optional[int] = None,
        **kwargs
    ):
        if sampler and reason:
            message = f"Sampling failed with {sampler}: {reason}"
        elif sampler:
            message = f"Sampling failed with {sampler}"
        else:
            message = "Posterior sampling failed"

        suggestions = kwargs.pop('suggestions', None) or [
            "Increase the number of warmup iterations",
            "Raise target_accept_prob to reduce step size",
            "Use the non-centred parameterization for epsilon",
            "Check that the augmentation bound M is large enough",
        ]

        if num_divergences:
            suggestions.insert(0, f"{num_divergences} divergent transitions were reported")

        super().__init__(
            message=message,
            suggestions=suggestions,
            documentation_link="https://docs.jolly-jax.org/sampling",
            error_code=kwargs.pop('error_code', "SAMPLING"),
            context={
                "sampler": sampler,
                "reason": reason,
                "num_divergences": num_divergences,
            },
            **kwargs
        )


class ConvergenceError(SamplingError):
    """Exception raised when chains fail the R-hat convergence gate."""

    def __init__(self, failed_parameters: Optional[Dict[str, float]] = None,
                 threshold: float = 1.1, **kwargs):
        self.failed_parameters = failed_parameters or {}
        worst = ", ".join(
            f"{name}={rhat:.3f}" for name, rhat in sorted(self.failed_parameters.items())
        )
        super().__init__(
            reason=f"R-hat above {threshold} for: {worst}" if worst
            else "Failed to reach convergence criteria",
            suggestions=[
                "Run longer chains (more warmup and samples)",
                "Run more chains to diagnose multimodality",
                "Inspect trace plots of the failing parameters",
                "Check whether the augmentation bound M is binding",
            ],
            error_code="CONVERGENCE",
            **kwargs
        )


class ValidationError(JollyJaxError):
    """Exception raised for validation failures."""

    def __init__(
        self,
        validation_type: Optional[str] = None,
        failed_checks: Optional[List[str]] = None,
        **kwargs
    ):
        if validation_type and failed_checks:
            message = f"{validation_type} validation failed: {', '.join(failed_checks)}"
        elif failed_checks:
            message = f"Validation failed: {', '.join(failed_checks)}"
        else:
            message = "Validation checks failed"

        suggestions = kwargs.pop('suggestions', None) or [
            "Check data quality and preprocessing",
            "Verify array shapes and value ranges",
        ]
        kwargs.setdefault("error_code", "VALIDATION")

        super().__init__(
            message=message,
            suggestions=suggestions,
            documentation_link="https://docs.jolly-jax.org/validation",
            context={
                "validation_type": validation_type,
                "failed_checks": failed_checks,
            },
            **kwargs
        )


class ParameterDomainError(ValidationError):
    """Exception raised when a probability or hyperparameter leaves its support."""

    def __init__(self, parameter: str, detail: str, **kwargs):
        self.parameter = parameter
        super().__init__(
            validation_type="Parameter domain",
            failed_checks=[f"{parameter} {detail}"],
            suggestions=[
                "Probabilities must lie in [0, 1] and mean_phi, mean_p, gamma in (0, 1)",
                "sigma must lie in (0, sigma_upper)",
                "This usually indicates an invalid proposal or an upstream bug",
            ],
            error_code="PARAM_DOMAIN",
            **kwargs
        )


class ConfigurationError(JollyJaxError):
    """Exception raised for configuration issues."""

    def __init__(self, config_key: Optional[str] = None, **kwargs):
        if config_key:
            message = f"Invalid configuration for '{config_key}'"
            suggestions = [
                f"Check the value for configuration key '{config_key}'",
                "Review configuration file syntax",
                "Check environment variable formatting",
                "Use jolly_jax.get_config() to inspect current settings",
            ]
        else:
            message = "Configuration error"
            suggestions = [
                "Check configuration file syntax",
                "Verify all required settings are provided",
            ]

        kwargs.pop('suggestions', None)

        super().__init__(
            message=message,
            suggestions=suggestions,
            documentation_link="https://docs.jolly-jax.org/configuration",
            error_code="CONFIG",
            context={"config_key": config_key},
            **kwargs
        )
