class InvalidInputError(ValueError):
    """A required query parameter is missing or unusable."""


class BackingStoreError(RuntimeError):
    """The sample/taxonomy store failed while serving a query."""


class UnknownSampleError(LookupError):
    def __init__(self, sample_id: str):
        super().__init__(f"Unknown sample: {sample_id}")
        self.sample_id = sample_id
