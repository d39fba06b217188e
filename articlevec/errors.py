"""Exception taxonomy for articlevec runs. No retries: every error here stops the run."""


class ArticleVecError(Exception):
    pass


class ConfigError(ArticleVecError):
    """Missing or malformed configuration table / resource."""


class SpanError(ArticleVecError):
    """A span does not fit inside the text it annotates."""


class PipelineError(ArticleVecError):
    """Reader/engine lifecycle or per-document processing failure."""
