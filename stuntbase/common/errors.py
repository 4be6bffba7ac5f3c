"""Error taxonomy for the search pipeline.

These are raised by collaborators (LLM client, candidate store) and caught at
stage boundaries; none of them is allowed to reach the caller of the pipeline.
"""


class StuntbaseError(Exception):
    """Base class for search pipeline errors."""
    pass


class GenerationFailure(StuntbaseError):
    """Upstream model error, timeout, or unusable output."""
    pass


class RetrievalFailure(StuntbaseError):
    """Candidate store could not answer a query."""
    pass


class CandidateStoreError(RetrievalFailure):
    """Transport or HTTP error talking to the candidate store."""
    pass
