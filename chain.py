from nacl.exceptions import CryptoError
from substrateinterface import Keypair, SubstrateInterface
from substrateinterface.exceptions import SubstrateRequestException
from websocket import WebSocketException

from errors import AuthError, ChainConnectionError, ChainQueryError, SubmissionError
from sidecar import Sidecar

# Decrypt an exported (polkadot-js) keystore.
def load_keypair(account: dict, password: str) -> Keypair:
	try:
		return Keypair.create_from_encrypted_json(account, password)
	except (CryptoError, ValueError, KeyError) as e:
		raise AuthError(
			'Unable to decrypt account {}: {}'.format(account.get('address'), e)
		) from e

# Token symbol and planck divisor for a runtime spec name. Unknown chains get `(None, None)`
# and amounts stay in planck.
def network_units(spec_name: str):
	if spec_name == 'polkadot':
		return 'DOT', 1e10
	elif spec_name == 'kusama':
		return 'KSM', 1e12
	return None, None

# Sidecar sends placeholder strings like 'frozen does not exist for this runtime' for balance
# fields the runtime doesn't have. Those read as None.
def as_planck(value):
	try:
		return int(value)
	except (TypeError, ValueError):
		return None

class ChainQuery:
	"""
	Everything the payout run needs from the chain.

	Reads go through Sidecar. The node websocket is only used to build and sign the batch
	extrinsic, which is then broadcast through Sidecar as well. Use as a context manager so the
	node connection is always closed.
	"""
	def __init__(self, sidecar: Sidecar, node_url: str):
		self.sidecar = sidecar
		self.node_url = node_url
		self.substrate = None

	def __enter__(self):
		self.connect()
		return self

	def __exit__(self, *exc) -> None:
		self.close()

	def connect(self) -> None:
		try:
			self.substrate = SubstrateInterface(url=self.node_url)
		except (OSError, WebSocketException) as e:
			raise ChainConnectionError(
				'Unable to connect to node at {}: {}'.format(self.node_url, e)
			) from e

	def close(self) -> None:
		if self.substrate is not None:
			self.substrate.close()
			self.substrate = None

	# Any `{'error': ...}` answer from Sidecar is fatal for a read.
	def checked(self, response: dict, what: str) -> dict:
		if 'error' in response.keys():
			raise ChainQueryError('Unable to get {}: {}'.format(what, response['error']))
		return response

	# A required field of a Sidecar answer.
	def field(self, response: dict, key: str, what: str):
		if response.get(key) is None:
			raise ChainQueryError('Unexpected {}: no {}'.format(what, key))
		return response[key]

	# A required integer field of a Sidecar answer.
	def number(self, response: dict, key: str, what: str) -> int:
		value = as_planck(self.field(response, key, what))
		if value is None:
			raise ChainQueryError('Unexpected {}: {} is {!r}'.format(what, key, response[key]))
		return value

	# Get chain spec name, token and decimals.
	def get_chain_info(self):
		spec_info = self.checked(self.sidecar.runtime_spec(), 'runtime spec')
		chain = self.field(spec_info, 'specName', 'runtime spec')
		token, decimals = network_units(chain)
		return chain, token, decimals

	def get_active_era(self) -> int:
		progress = self.checked(self.sidecar.staking_progress(), 'staking progress')
		return self.number(progress, 'activeEra', 'staking progress')

	# Spendable balance in planck. Newer runtimes have a single `frozen` that overlaps with
	# `reserved`; older ones split it in `miscFrozen` and `feeFrozen`. The fields a runtime
	# doesn't have hold placeholder strings.
	def get_available_balance(self, address: str) -> int:
		what = 'balance of ' + address
		bal = self.checked(self.sidecar.account_balance_info(address), what)
		free = self.number(bal, 'free', what)
		frozen = as_planck(bal.get('frozen'))
		if frozen is not None:
			reserved = as_planck(bal.get('reserved')) or 0
			locked = max(frozen - reserved, 0)
		else:
			locked = max(as_planck(bal.get('feeFrozen')) or 0, as_planck(bal.get('miscFrozen')) or 0)
		return max(free - locked, 0)

	def get_account_nonce(self, address: str) -> int:
		what = 'nonce of ' + address
		bal = self.checked(self.sidecar.account_balance_info(address), what)
		return self.number(bal, 'nonce', what)

	# Eras already paid out for a validator stash. Entries are either plain era numbers or, on
	# newer runtimes, `{'era': ..., 'status': ...}` objects.
	def get_claimed_rewards(self, validator: str) -> set:
		info = self.checked(
			self.sidecar.account_staking_info(validator),
			'staking info of ' + validator
		)
		ledger = info.get('staking') or info.get('stakingLedger')
		if ledger is None:
			raise ChainQueryError('No staking ledger for {}'.format(validator))

		entries = ledger.get('claimedRewards')
		if entries is None:
			entries = ledger.get('legacyClaimedRewards', [])

		claimed = set()
		for entry in entries:
			if isinstance(entry, dict):
				if entry.get('status') == 'claimed':
					claimed.add(int(entry['era']))
			else:
				claimed.add(int(entry))
		return claimed

	# Validators that earned reward points in an era.
	def get_era_reward_points(self, era: int) -> set:
		points = self.checked(
			self.sidecar.pallet_storage('staking', 'erasRewardPoints', [era]),
			'reward points of era {}'.format(era)
		)
		value = points.get('value') or {}
		individual = value.get('individual') or {}
		if isinstance(individual, dict):
			return set(individual.keys())
		return set(item[0] for item in individual)

	# Sign one `utility.batch` of `staking.payoutStakers` calls and broadcast it. Returns the
	# transaction hash.
	def submit_batch(self, transactions: list, signer: Keypair, nonce: int) -> str:
		if self.substrate is None:
			raise SubmissionError('Not connected to a node')
		try:
			calls = [
				self.substrate.compose_call(
					call_module='Staking',
					call_function='payout_stakers',
					call_params={'validator_stash': tx.validator, 'era': tx.era}
				)
				for tx in transactions
			]
			batch_call = self.substrate.compose_call(
				call_module='Utility',
				call_function='batch',
				call_params={'calls': calls}
			)
			extrinsic = self.substrate.create_signed_extrinsic(
				call=batch_call,
				keypair=signer,
				nonce=nonce
			)
		except (SubstrateRequestException, ValueError) as e:
			raise SubmissionError('Unable to sign batch: {}'.format(e)) from e

		response = self.sidecar.transaction(extrinsic.data.to_hex())
		if 'error' in response.keys():
			raise SubmissionError('Unable to submit batch: {}'.format(response['error']))
		if not response.get('hash'):
			raise SubmissionError(
				'Batch was sent but Sidecar returned no transaction hash: {}'.format(response)
			)
		return response['hash']
