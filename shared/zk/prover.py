"""
ZK-SNARK Proof Generation
=========================

Python wrapper for generating claim proofs with snarkjs.

The claim circuit proves knowledge of `secret` such that
H(claimant, secret) == leaf, and exposes [packetId, leaf, claimant] as
public signals. This runs on the claimant's side; the ledger only verifies.

Version: 1.0.0
"""

import asyncio
import json
import subprocess
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from shared.config import settings
from shared.logging import get_logger
from shared.zk.hasher import (
    Hasher,
    Sha256FieldHasher,
    claim_leaf,
    claim_public_inputs,
    identity_to_field,
    secret_to_field,
)
from shared.zk.models import (
    ProofMetadata,
    ProofWithMetadata,
    PublicSignals,
    ZKProof,
)


logger = get_logger(__name__)


@dataclass
class ClaimInput:
    """Witness for the claim circuit."""

    packet_id: int
    claimant: int
    secret: int
    leaf: int

    def to_circuit_input(self) -> dict[str, str]:
        return {
            "packetId": str(self.packet_id),
            "claimant": str(self.claimant),
            "secret": str(self.secret),
            "leaf": str(self.leaf),
        }


class ClaimProver:
    """
    ZK-SNARK proof generator for packet claims.

    Usage:
        prover = ClaimProver()

        proof = await prover.prove_claim(
            packet_id=7,
            claimant="0xabc...",
            secret="open sesame",
        )
    """

    def __init__(
        self,
        build_dir: str | Path | None = None,
        circuit_name: str | None = None,
        hasher: Hasher | None = None,
    ) -> None:
        self.build_dir = Path(build_dir) if build_dir else settings.zk.build_dir
        self.circuit_name = circuit_name or settings.zk.claim_circuit
        self.hasher = hasher or Sha256FieldHasher()
        self._validate_setup()

    def _validate_setup(self) -> None:
        """Validate that required circuit files exist."""
        if not self.build_dir.exists():
            logger.warning(
                "zk_circuit_build_dir_not_found",
                path=str(self.build_dir),
            )

    def build_input(self, packet_id: int, claimant: str, secret: str) -> ClaimInput:
        if packet_id < 1:
            raise ValueError(f"Invalid packet id {packet_id}")
        if not claimant:
            raise ValueError("Claimant identity is required")
        if not secret:
            raise ValueError("Claim secret is required")

        return ClaimInput(
            packet_id=packet_id,
            claimant=identity_to_field(claimant),
            secret=secret_to_field(secret),
            leaf=claim_leaf(self.hasher, claimant, secret),
        )

    async def _run_snarkjs(
        self,
        input_data: dict[str, Any],
    ) -> tuple[dict, list[str], int]:
        """
        Run snarkjs to generate a proof.

        Returns:
            Tuple of (proof_json, public_signals, proving_time_ms)
        """
        circuit_dir = self.build_dir / self.circuit_name
        wasm_path = circuit_dir / f"{self.circuit_name}_js" / f"{self.circuit_name}.wasm"
        zkey_path = circuit_dir / "proving_key.zkey"

        if not wasm_path.exists():
            raise FileNotFoundError(f"Circuit WASM not found: {wasm_path}")
        if not zkey_path.exists():
            raise FileNotFoundError(f"Proving key not found: {zkey_path}")

        run_id = uuid.uuid4().hex[:12]
        input_file = circuit_dir / f"input_{run_id}.json"
        proof_file = circuit_dir / f"proof_{run_id}.json"
        public_file = circuit_dir / f"public_{run_id}.json"

        with open(input_file, "w") as f:
            json.dump(input_data, f)

        try:
            start_time = time.time()

            result = await asyncio.to_thread(
                subprocess.run,
                [
                    "npx",
                    "snarkjs",
                    "groth16",
                    "fullprove",
                    str(input_file),
                    str(wasm_path),
                    str(zkey_path),
                    str(proof_file),
                    str(public_file),
                ],
                capture_output=True,
                text=True,
                cwd=self.build_dir.parent,
            )

            proving_time_ms = int((time.time() - start_time) * 1000)

            if result.returncode != 0:
                logger.error(
                    "snarkjs_proof_generation_failed",
                    stderr=result.stderr,
                    circuit=self.circuit_name,
                )
                raise RuntimeError(f"Proof generation failed: {result.stderr}")

            with open(proof_file) as f:
                proof_json = json.load(f)
            with open(public_file) as f:
                public_signals = json.load(f)

            logger.info(
                "zk_proof_generated",
                circuit=self.circuit_name,
                proving_time_ms=proving_time_ms,
            )

            return proof_json, public_signals, proving_time_ms

        finally:
            for temp_path in [input_file, proof_file, public_file]:
                if temp_path.exists():
                    temp_path.unlink()

    async def prove_claim(
        self,
        packet_id: int,
        claimant: str,
        secret: str,
    ) -> ProofWithMetadata:
        """
        Generate a proof that the claimant knows the secret behind their leaf.

        Args:
            packet_id: Packet being claimed
            claimant: Claimant identity bound into the proof
            secret: Shared secret ("password") of the packet

        Returns:
            ProofWithMetadata containing the proof and public signals

        Raises:
            ValueError: If inputs are missing or malformed
            RuntimeError: If the circuit emits unexpected public signals
        """
        claim_input = self.build_input(packet_id, claimant, secret)

        proof_json, public_signals, proving_time_ms = await self._run_snarkjs(
            claim_input.to_circuit_input(),
        )

        signals = PublicSignals(signals=public_signals)
        expected = claim_public_inputs(packet_id, claim_input.leaf, claimant)
        if signals.to_int_list()[: len(expected)] != expected:
            raise RuntimeError("Circuit public signals do not match the claim layout")

        return ProofWithMetadata(
            proof=ZKProof(**proof_json),
            public_signals=signals,
            metadata=ProofMetadata(
                circuit_name=self.circuit_name,
                proving_time_ms=proving_time_ms,
                packet_id=packet_id,
                leaf=str(claim_input.leaf),
            ),
        )
