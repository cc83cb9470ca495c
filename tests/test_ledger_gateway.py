import asyncio

import pytest

from conftest import ALICE
from config.config import DEV_CONTRACT_ADDRESS, FHEConfig, LedgerConfig
from fhe.coprocessor import LocalCoprocessor
from ledger.dev_chain import DevChainRegistry
from ledger.ledger_gateway import (
    DEFAULT_OPTIONS, LedgerGateway, decode_options, encode_options
)
from ledger.wallet import LocalSigner
from utils.errors import (
    ConfirmationTimeout, DuplicateId, LedgerUnavailable, RecordNotFound,
    SubmissionFailed, TransactionRejectedByUser
)


class FlakyRegistry(DevChainRegistry):
    """Fails reads for the ids in ``broken``"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.broken = set()

    async def get_record(self, record_id):
        if record_id in self.broken:
            raise ConnectionResetError(f"read of {record_id} dropped")
        return await super().get_record(record_id)


def make_gateway(block_time: float = 0.0, timeout: float = 5.0, registry_cls=DevChainRegistry):
    coprocessor = LocalCoprocessor(FHEConfig(key_seed="test-seed"))
    registry = registry_cls(coprocessor, block_time=block_time)
    gateway = LedgerGateway(registry, LedgerConfig(
        block_time=block_time, confirmation_timeout=timeout))
    return coprocessor, registry, gateway


async def submit(coprocessor, writer, vote_id, value=1, metadata=""):
    await coprocessor.initialize_session(writer.signer.address)
    encrypted = await coprocessor.encrypt(DEV_CONTRACT_ADDRESS, writer.signer.address, value)
    return await writer.submit_vote(
        vote_id, f"Title {vote_id}", encrypted.ciphertext, encrypted.proof, 0, 0, metadata)


def test_submit_and_read_back():
    async def scenario():
        coprocessor, registry, gateway = make_gateway()
        writer = gateway.bind_signer(LocalSigner(ALICE))
        tx = await submit(coprocessor, writer, "vote-a",
                          metadata=encode_options("Red", "Green", "Blue"))
        receipt = await gateway.wait_for_confirmation(tx)
        record = await gateway.get_record("vote-a")
        return receipt, record, writer

    receipt, record, writer = asyncio.run(scenario())
    assert receipt.block_number == 1
    assert record.creator == ALICE
    assert record.options == ("Red", "Green", "Blue")
    assert record.is_verified is False
    assert record.decrypted_value is None
    assert record.encrypted_handle.startswith("0x")
    assert writer.signer.signed == 1


def test_list_records_skips_failed_reads():
    async def scenario():
        coprocessor, registry, gateway = make_gateway(registry_cls=FlakyRegistry)
        writer = gateway.bind_signer(LocalSigner(ALICE))
        for vote_id in ("vote-a", "vote-b", "vote-c"):
            await gateway.wait_for_confirmation(await submit(coprocessor, writer, vote_id))
        registry.broken.add("vote-b")
        return await gateway.list_records()

    records = asyncio.run(scenario())
    assert [r.id for r in records] == ["vote-a", "vote-c"]


def test_list_ids_failure_is_ledger_unavailable():
    async def scenario():
        _, registry, gateway = make_gateway()
        registry.available = False
        with pytest.raises(LedgerUnavailable):
            await gateway.list_records()
        with pytest.raises(LedgerUnavailable):
            await gateway.is_registry_available()

    asyncio.run(scenario())


def test_missing_record():
    async def scenario():
        _, _, gateway = make_gateway()
        with pytest.raises(RecordNotFound):
            await gateway.get_record("vote-missing")

    asyncio.run(scenario())


def test_duplicate_id_rejected():
    async def scenario():
        coprocessor, registry, gateway = make_gateway()
        writer = gateway.bind_signer(LocalSigner(ALICE))
        await gateway.wait_for_confirmation(await submit(coprocessor, writer, "vote-a"))
        with pytest.raises(DuplicateId):
            await submit(coprocessor, writer, "vote-a")
        return registry

    registry = asyncio.run(scenario())
    assert registry.submissions == ["createRecord"]


def test_conflicting_transactions_revert_at_inclusion():
    async def scenario():
        coprocessor, _, gateway = make_gateway(block_time=0.01)
        writer = gateway.bind_signer(LocalSigner(ALICE))
        first = await submit(coprocessor, writer, "vote-a")
        second = await submit(coprocessor, writer, "vote-a")
        await gateway.wait_for_confirmation(first)
        with pytest.raises(DuplicateId):
            await gateway.wait_for_confirmation(second)

    asyncio.run(scenario())


def test_invalid_input_proof_rejected():
    async def scenario():
        coprocessor, _, gateway = make_gateway()
        writer = gateway.bind_signer(LocalSigner(ALICE))
        await coprocessor.initialize_session(ALICE)
        encrypted = await coprocessor.encrypt(DEV_CONTRACT_ADDRESS, ALICE, 1)
        with pytest.raises(SubmissionFailed):
            await writer.submit_vote("vote-a", "t", encrypted.ciphertext,
                                     b"\x00" * 64, 0, 0, "")

    asyncio.run(scenario())


def test_confirmation_timeout():
    async def scenario():
        coprocessor, registry, gateway = make_gateway(block_time=1.0, timeout=0.05)
        writer = gateway.bind_signer(LocalSigner(ALICE))
        tx = await submit(coprocessor, writer, "vote-a")
        with pytest.raises(ConfirmationTimeout):
            await gateway.wait_for_confirmation(tx)
        # The transaction itself keeps going
        return tx.confirmed, await tx.wait()

    confirmed_at_timeout, receipt = asyncio.run(scenario())
    assert confirmed_at_timeout is False
    assert receipt.block_number == 1


def test_user_rejection_sends_nothing():
    async def scenario():
        coprocessor, registry, gateway = make_gateway()
        writer = gateway.bind_signer(LocalSigner(ALICE, approve=lambda description: False))
        with pytest.raises(TransactionRejectedByUser):
            await submit(coprocessor, writer, "vote-a")
        return registry

    registry = asyncio.run(scenario())
    assert registry.submissions == []


def test_async_approval_callback():
    async def approve(description):
        await asyncio.sleep(0)
        return description.startswith("createRecord")

    async def scenario():
        coprocessor, _, gateway = make_gateway()
        writer = gateway.bind_signer(LocalSigner(ALICE, approve=approve))
        await gateway.wait_for_confirmation(await submit(coprocessor, writer, "vote-a"))
        with pytest.raises(TransactionRejectedByUser):
            await writer.submit_decryption_proof("vote-a", "0x", "0x")

    asyncio.run(scenario())


def test_option_metadata_fallbacks():
    assert decode_options("") == DEFAULT_OPTIONS
    assert decode_options("options: A, B, C") == DEFAULT_OPTIONS
    assert decode_options('{"options": ["A", "B"]}') == DEFAULT_OPTIONS
    assert decode_options('["A", "B", "C"]') == DEFAULT_OPTIONS
    assert decode_options(encode_options("Yes", "No", "Abstain")) == ("Yes", "No", "Abstain")
