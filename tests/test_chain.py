import pytest

from chain import ChainQuery, network_units
from errors import ChainQueryError, SubmissionError
from payouts import PayoutTransaction
from tests.fakes import V1, V2, FakeSidecar

class FakeScaleBytes:
	def to_hex(self):
		return '0xdeadbeef'

class FakeExtrinsic:
	data = FakeScaleBytes()

class FakeSubstrate:
	def __init__(self):
		self.composed = []
		self.signed = []

	def compose_call(self, call_module, call_function, call_params):
		call = (call_module, call_function, call_params)
		self.composed.append(call)
		return call

	def create_signed_extrinsic(self, call, keypair, nonce):
		self.signed.append((call, keypair, nonce))
		return FakeExtrinsic()

def chain_with(**responses):
	return ChainQuery(FakeSidecar(**responses), 'ws://127.0.0.1:9944')

def test_network_units():
	assert network_units('polkadot') == ('DOT', 1e10)
	assert network_units('kusama') == ('KSM', 1e12)
	assert network_units('westend') == (None, None)

def test_chain_info():
	chain = chain_with(spec={'specName': 'polkadot', 'specVersion': '9430'})
	assert chain.get_chain_info() == ('polkadot', 'DOT', 1e10)

def test_active_era():
	chain = chain_with(progress={'activeEra': '1234', 'currentEra': '1235'})
	assert chain.get_active_era() == 1234

def test_active_era_missing():
	chain = chain_with(progress={'activeEra': None})
	with pytest.raises(ChainQueryError):
		chain.get_active_era()

def test_available_balance_with_legacy_frozen_fields():
	chain = chain_with(balance_info={
		'nonce': '3', 'free': '1000', 'reserved': '10', 'miscFrozen': '300', 'feeFrozen': '200',
	})
	assert chain.get_available_balance(V1) == 700

def test_available_balance_with_frozen_field():
	chain = chain_with(balance_info={'nonce': '3', 'free': '1000', 'frozen': '1000'})
	assert chain.get_available_balance(V1) == 0

def test_account_nonce():
	chain = chain_with(balance_info={'nonce': '17', 'free': '1'})
	assert chain.get_account_nonce(V1) == 17

def test_claimed_rewards_as_era_list():
	chain = chain_with(staking_info={'staking': {'stash': V1, 'claimedRewards': ['16', '17']}})
	assert chain.get_claimed_rewards(V1) == {16, 17}

def test_claimed_rewards_with_status():
	chain = chain_with(staking_info={'staking': {'claimedRewards': [
		{'era': '16', 'status': 'claimed'},
		{'era': '17', 'status': 'unclaimed'},
		{'era': '18', 'status': 'partially claimed'},
	]}})
	assert chain.get_claimed_rewards(V1) == {16}

def test_claimed_rewards_from_legacy_field():
	chain = chain_with(staking_info={'staking': {'legacyClaimedRewards': [5]}})
	assert chain.get_claimed_rewards(V1) == {5}

def test_claimed_rewards_without_ledger():
	chain = chain_with(staking_info={'controller': V1})
	with pytest.raises(ChainQueryError):
		chain.get_claimed_rewards(V1)

def test_sidecar_error_is_fatal():
	chain = chain_with(staking_info={'error': 'Response Error: 400 (not a stash)'})
	with pytest.raises(ChainQueryError, match='not a stash'):
		chain.get_claimed_rewards(V1)

def test_era_reward_points_as_map():
	chain = chain_with(storage={'value': {'total': '60', 'individual': {V1: '20', V2: '40'}}})
	assert chain.get_era_reward_points(50) == {V1, V2}
	assert chain.sidecar.requests == [('staking', 'erasRewardPoints', [50])]

def test_era_reward_points_as_pairs():
	chain = chain_with(storage={'value': {'total': '20', 'individual': [[V2, '20']]}})
	assert chain.get_era_reward_points(50) == {V2}

def test_era_reward_points_empty_era():
	chain = chain_with(storage={'value': None})
	assert chain.get_era_reward_points(50) == set()

def test_submit_batch_signs_one_batch_call():
	chain = chain_with(transaction={'hash': '0xfeed'})
	chain.substrate = FakeSubstrate()
	signer = object()
	batch = [PayoutTransaction(V1, 5), PayoutTransaction(V2, 6)]

	assert chain.submit_batch(batch, signer, 9) == '0xfeed'

	payouts = [
		('Staking', 'payout_stakers', {'validator_stash': V1, 'era': 5}),
		('Staking', 'payout_stakers', {'validator_stash': V2, 'era': 6}),
	]
	batch_call = ('Utility', 'batch', {'calls': payouts})
	assert chain.substrate.composed == payouts + [batch_call]
	assert chain.substrate.signed == [(batch_call, signer, 9)]
	assert chain.sidecar.posted == ['0xdeadbeef']

def test_submit_batch_broadcast_error():
	chain = chain_with(transaction={'error': 'Response Error: 400 (Priority is too low)'})
	chain.substrate = FakeSubstrate()
	with pytest.raises(SubmissionError, match='Priority is too low'):
		chain.submit_batch([PayoutTransaction(V1, 5)], object(), 1)

def test_submit_batch_needs_a_node():
	chain = chain_with()
	with pytest.raises(SubmissionError):
		chain.submit_batch([PayoutTransaction(V1, 5)], object(), 1)

def test_context_manager_closes_node_connection(monkeypatch):
	closed = []

	class FakeInterface:
		def __init__(self, url):
			self.url = url

		def close(self):
			closed.append(self.url)

	monkeypatch.setattr('chain.SubstrateInterface', FakeInterface)
	with pytest.raises(RuntimeError):
		with chain_with() as chain:
			assert chain.substrate.url == 'ws://127.0.0.1:9944'
			raise RuntimeError('stop')
	assert closed == ['ws://127.0.0.1:9944']
	assert chain.substrate is None

def test_wrong_password_is_an_auth_error(monkeypatch):
	from nacl.exceptions import CryptoError

	from chain import load_keypair
	from errors import AuthError

	def decrypt(json_data, passphrase):
		raise CryptoError('Decryption failed. Ciphertext failed verification')

	monkeypatch.setattr('chain.Keypair.create_from_encrypted_json', decrypt)
	with pytest.raises(AuthError, match='Unable to decrypt account'):
		load_keypair({'address': V1}, 'wrong')

def test_available_balance_ignores_placeholder_frozen_on_legacy_runtime():
	chain = chain_with(balance_info={
		'nonce': '3',
		'free': '1000',
		'reserved': '0',
		'miscFrozen': '300',
		'feeFrozen': '200',
		'frozen': 'frozen does not exist for this runtime',
	})
	assert chain.get_available_balance(V1) == 700

def test_available_balance_ignores_placeholder_misc_and_fee_frozen():
	chain = chain_with(balance_info={
		'nonce': '3',
		'free': '1000',
		'reserved': '100',
		'frozen': '400',
		'miscFrozen': 'miscFrozen does not exist for this runtime',
		'feeFrozen': 'feeFrozen does not exist for this runtime',
	})
	assert chain.get_available_balance(V1) == 700

def test_frozen_funds_overlap_with_reserved():
	chain = chain_with(balance_info={'nonce': '3', 'free': '1000', 'reserved': '600', 'frozen': '1000'})
	assert chain.get_available_balance(V1) == 600

def test_frozen_below_reserved_leaves_free_untouched():
	chain = chain_with(balance_info={'nonce': '3', 'free': '1000', 'reserved': '600', 'frozen': '500'})
	assert chain.get_available_balance(V1) == 1000

def test_balance_without_free_is_a_query_error():
	chain = chain_with(balance_info={'nonce': '1'})
	with pytest.raises(ChainQueryError, match='no free'):
		chain.get_available_balance(V1)

def test_balance_with_unreadable_free_is_a_query_error():
	chain = chain_with(balance_info={'nonce': '1', 'free': 'lots'})
	with pytest.raises(ChainQueryError, match="free is 'lots'"):
		chain.get_available_balance(V1)

def test_nonce_missing_is_a_query_error():
	chain = chain_with(balance_info={'free': '1000'})
	with pytest.raises(ChainQueryError, match='no nonce'):
		chain.get_account_nonce(V1)

def test_chain_info_without_spec_name_is_a_query_error():
	chain = chain_with(spec={'specVersion': '9430'})
	with pytest.raises(ChainQueryError, match='no specName'):
		chain.get_chain_info()

def test_submit_batch_without_hash_is_a_submission_error():
	chain = chain_with(transaction={})
	chain.substrate = FakeSubstrate()
	with pytest.raises(SubmissionError, match='no transaction hash'):
		chain.submit_batch([PayoutTransaction(V1, 5)], object(), 1)

def test_unreachable_node_is_a_connection_error(monkeypatch):
	from errors import ChainConnectionError

	def refuse(url):
		raise ConnectionRefusedError(111, 'Connection refused')

	monkeypatch.setattr('chain.SubstrateInterface', refuse)
	chain = chain_with()
	with pytest.raises(ChainConnectionError, match='Unable to connect to node at ws://127.0.0.1:9944'):
		with chain:
			pass
	assert chain.substrate is None
