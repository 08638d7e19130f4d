"""
ZK-SNARK Proof Verification
===========================

Verifier capability used by the packet ledger, with a snarkjs-backed
Groth16 implementation.

Version: 1.0.0
"""

import asyncio
import json
import subprocess
import time
import uuid
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from shared.config import ZKMode, settings
from shared.logging import get_logger
from shared.zk.models import PublicSignals, VerificationResult, ZKProof


logger = get_logger(__name__)


class ProofVerifier(Protocol):
    """Opaque proof check: does this proof satisfy these public inputs?"""

    async def verify(self, proof: ZKProof, public_inputs: Sequence[int]) -> bool:
        ...


class SnarkjsVerifier:
    """
    Groth16 verifier backed by `snarkjs groth16 verify`.

    Expects `<build_dir>/<circuit_name>/verification_key.json`.
    """

    def __init__(
        self,
        build_dir: str | Path | None = None,
        circuit_name: str | None = None,
        timeout_seconds: int | None = None,
    ) -> None:
        self.build_dir = Path(build_dir) if build_dir else settings.zk.build_dir
        self.circuit_name = circuit_name or settings.zk.claim_circuit
        self.timeout_seconds = timeout_seconds or settings.zk.verify_timeout_seconds

    @property
    def vkey_path(self) -> Path:
        return self.build_dir / self.circuit_name / "verification_key.json"

    async def verify_detailed(
        self,
        proof: ZKProof,
        public_inputs: Sequence[int],
    ) -> VerificationResult:
        """
        Verify a proof off-chain using snarkjs.

        Args:
            proof: The Groth16 proof
            public_inputs: Public signals the proof must satisfy

        Returns:
            VerificationResult with verification status
        """
        if not self.vkey_path.exists():
            return VerificationResult(
                valid=False,
                verification_time_ms=0,
                error=f"Verification key not found: {self.vkey_path}",
            )

        # Unique names so concurrent verifications never share files
        circuit_dir = self.build_dir / self.circuit_name
        run_id = uuid.uuid4().hex[:12]
        proof_file = circuit_dir / f"verify_proof_{run_id}.json"
        public_file = circuit_dir / f"verify_public_{run_id}.json"

        try:
            with open(proof_file, "w") as f:
                json.dump(proof.model_dump(), f)
            with open(public_file, "w") as f:
                json.dump(PublicSignals.from_ints(list(public_inputs)).signals, f)

            start_time = time.time()

            try:
                result = await asyncio.to_thread(
                    subprocess.run,
                    [
                        "npx", "snarkjs", "groth16", "verify",
                        str(self.vkey_path),
                        str(public_file),
                        str(proof_file),
                    ],
                    capture_output=True,
                    text=True,
                    cwd=self.build_dir.parent,
                    timeout=self.timeout_seconds,
                )
            except subprocess.TimeoutExpired:
                logger.warning(
                    "zk_verify_timeout",
                    circuit=self.circuit_name,
                    timeout_seconds=self.timeout_seconds,
                )
                return VerificationResult(
                    valid=False,
                    verification_time_ms=int((time.time() - start_time) * 1000),
                    error=f"Verification timed out after {self.timeout_seconds}s",
                )

            verification_time_ms = int((time.time() - start_time) * 1000)
            is_valid = result.returncode == 0 and "OK" in result.stdout

            logger.info(
                "zk_proof_verified",
                circuit=self.circuit_name,
                valid=is_valid,
                verification_time_ms=verification_time_ms,
            )

            return VerificationResult(
                valid=is_valid,
                verification_time_ms=verification_time_ms,
                error=(result.stderr or "Proof rejected") if not is_valid else None,
            )

        finally:
            for temp_file in [proof_file, public_file]:
                if temp_file.exists():
                    temp_file.unlink()

    async def verify(self, proof: ZKProof, public_inputs: Sequence[int]) -> bool:
        result = await self.verify_detailed(proof, public_inputs)
        return result.valid


# Global verifier instance
_verifier: ProofVerifier | None = None


def get_verifier() -> ProofVerifier:
    """
    Get the configured proof verifier.

    Returns:
        ProofVerifier instance based on settings
    """
    global _verifier

    if _verifier is None:
        mode = settings.zk.mode

        if mode == ZKMode.MOCK:
            from shared.zk.mock import MockVerifier

            _verifier = MockVerifier()
        elif mode == ZKMode.SNARKJS:
            _verifier = SnarkjsVerifier()
        else:
            raise ValueError(f"Unknown ZK mode: {mode}")

        logger.info("zk_verifier_initialized", mode=mode.value)

    return _verifier


def set_verifier(verifier: ProofVerifier) -> None:
    """Set a custom proof verifier."""
    global _verifier
    _verifier = verifier
    logger.info("zk_verifier_set", verifier=type(verifier).__name__)


def reset_verifier() -> None:
    """Reset the verifier to be re-initialized."""
    global _verifier
    _verifier = None
