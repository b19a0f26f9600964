from __future__ import annotations


class SafePostError(Exception):
    """Base error for SafePost."""

    code = "SAFEPOST_ERROR"
    status_code = 500
    # Only transient engine failures may be retried with unchanged input.
    retryable = False


class InvalidInput(SafePostError):
    """Caller-supplied content or metadata is unusable."""

    code = "INVALID_INPUT"
    status_code = 422


class ContentOutOfScope(InvalidInput):
    """The engine judged the content unrelated to regulated healthcare advertising."""

    code = "CONTENT_OUT_OF_SCOPE"


class EmptyCorpus(SafePostError):
    """No guidelines are available to check content against."""

    code = "EMPTY_CORPUS"
    status_code = 503


class ProviderConfigError(SafePostError):
    """Missing or invalid model provider configuration."""

    code = "PROVIDER_CONFIG_ERROR"
    status_code = 500


class EngineTimeout(SafePostError):
    """The compliance engine did not answer within the configured deadline."""

    code = "ENGINE_TIMEOUT"
    status_code = 504
    retryable = True


class EngineUnavailable(SafePostError):
    """Transport or authentication failure talking to the compliance engine."""

    code = "ENGINE_UNAVAILABLE"
    status_code = 503
    retryable = True


class EngineContractViolation(SafePostError):
    """The engine answered with a document that cannot be parsed into a verdict."""

    code = "ENGINE_CONTRACT_VIOLATION"
    status_code = 502


class UnknownSeverity(EngineContractViolation):
    """An issue severity outside the closed Critical/Warning set."""

    code = "UNKNOWN_SEVERITY"


class ContractViolation(SafePostError):
    """Overall status and issue list contradict each other."""

    code = "CONTRACT_VIOLATION"
    status_code = 502


class NothingToRewrite(SafePostError):
    """Rewrites were requested for content with no flagged issues."""

    code = "NOTHING_TO_REWRITE"
    status_code = 422


class RewriteGenerationFailed(SafePostError):
    """The engine could not produce a usable rewrite set."""

    code = "REWRITE_GENERATION_FAILED"
    status_code = 502
    retryable = True


class FeatureNotEntitled(SafePostError):
    """The caller's plan does not include the requested capability."""

    code = "FEATURE_NOT_ENTITLED"
    status_code = 403

    def __init__(self, feature: str, plan_key: str) -> None:
        super().__init__(f"Feature {feature!r} is not included in plan {plan_key!r}")
        self.feature = feature
        self.plan_key = plan_key


class CheckLimitReached(SafePostError):
    """The caller used every compliance check included in their plan this month."""

    code = "CHECK_LIMIT_REACHED"
    status_code = 402


class NotFound(SafePostError):
    """History record missing or owned by another user."""

    code = "NOT_FOUND"
    status_code = 404


class DatabaseError(SafePostError):
    """Database layer failure."""

    code = "DATABASE_ERROR"
    status_code = 500
