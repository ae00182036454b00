class ProofValidationError(ValueError):
    """Input rejected before anything was written (e.g. no file reference)."""


class ProofNotFoundError(LookupError):
    """The proof a write targets does not exist."""

    def __init__(self, proof_id: str):
        super().__init__(f"Proof not found: {proof_id}")
        self.proof_id = proof_id
