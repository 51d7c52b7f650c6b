from .blake3_fragment import Blake3LimbFragment
from .benchmark import CalibrationResult, benchmark_hash_rate
from .classes import (
    ColliderVmConfig,
    FlowIdResult,
    OperatorInfo,
    PresignedFlow,
    PresignedStep,
    SignerInfo,
    TxTemplate,
)
from .codec import (
    flow_id_to_prefix_bytes,
    flow_id_to_prefix_nibbles,
    nibbles_to_bytes,
)
from .errors import (
    EncodingPreconditionError,
    OutOfRangeError,
    ScriptExecutionError,
    SearchExhaustedError,
    SearchTimeoutError,
)
from .flows import presign_flow
from .functions import run_script, run_auth_script, add_opcode
from .interfaces import CanComputeDigestFragment, NibbleOrder
from .oracle import (
    calculate_flow_id,
    find_valid_nonce,
    find_valid_nonce_parallel,
)
from .parsing import compile_script, decompile_script
from .tools import (
    GateRole,
    Script,
    build_locking_script,
    build_script_f1_blake3_locked,
    build_script_f2_blake3_locked,
    check_flow_spend,
    create_dummy_sighash_message,
    create_toy_sighash_message,
    make_flow_witness,
    make_prefix_equalverify,
)
