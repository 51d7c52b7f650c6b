from __future__ import annotations
from .classes import (
    ColliderVmConfig,
    PresignedFlow,
    PresignedStep,
    SignerInfo,
    TxTemplate,
)
from .codec import flow_id_to_prefix_nibbles
from .errors import tert, vert
from .interfaces import CanComputeDigestFragment
from .tools import GateRole, build_locking_script, create_toy_sighash_message
import logging


logger = logging.getLogger(__name__)


def make_presigned_step(
        role: GateRole|str, pubkey: bytes, prefix: list[int], value: int,
        hash_fragment: CanComputeDigestFragment|None = None) -> PresignedStep:
    """Build an unsigned step: the role's locking script, the template
        locking that value to it, and the template's toy sighash.
    """
    locking_script = build_locking_script(role, pubkey, prefix, hash_fragment)
    template = TxTemplate(locking_script.bytes, value)
    return PresignedStep(
        tx_template=template,
        sighash_message=create_toy_sighash_message(locking_script, value),
        locking_script=locking_script.bytes,
    )

def sign_step(step: PresignedStep, signers: list[SignerInfo]) -> PresignedStep:
    """Add a signature from each signer to the step."""
    for signer in signers:
        step.add_signature(signer.pubkey, signer.sign(step.sighash_message))
    return step

def presign_flow(
        config: ColliderVmConfig, flow_id: int, signers: list[SignerInfo],
        pubkey: bytes, value: int,
        hash_fragment: CanComputeDigestFragment|None = None) -> PresignedFlow:
    """Build and sign the F1 then F2 steps for the flow id. The locking
        scripts embed pubkey, the key whose signature spends each step.
    """
    config.validate()
    tert(type(flow_id) is int, 'flow_id must be int')
    vert(0 <= flow_id < 2**config.l, 'flow_id must be < 2^l')
    vert(len(signers) > 0, 'signers must not be empty')

    prefix = flow_id_to_prefix_nibbles(flow_id, config.b)
    flow = PresignedFlow(flow_id)

    for role in (GateRole.F1, GateRole.F2):
        step = make_presigned_step(role, pubkey, prefix, value, hash_fragment)
        flow.add_step(sign_step(step, signers))

    logger.debug(
        'presigned flow %d: %d steps, %d signers',
        flow_id, len(flow.steps), len(signers)
    )
    return flow
