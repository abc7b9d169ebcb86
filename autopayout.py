#%% INFO
# Claim and distribute validator staking rewards for your stakers.
#
# Finds every era in the claim window with unclaimed rewards for the configured validators and
# claims all of them in one `utility.batch` extrinsic, signed with an exported account json.
# Chain data is read through https://github.com/paritytech/substrate-api-sidecar.
#
import getpass
import sys
from datetime import datetime

from chain import ChainQuery, load_keypair
from config import Config, load_account, load_config
from errors import AutoPayoutError, InsufficientFundsError
from payouts import Outcome, compute_batch
from sidecar import Sidecar

BOLD = '\x1b[1m'
RED = '\x1b[31m'
GREEN = '\x1b[32m'
YELLOW = '\x1b[33m'
WHITE = '\x1b[37m'
MAGENTA_BG = '\x1b[45m'
RESET = '\x1b[0m'

NO_REWARDS = "There's no unclaimed rewards"

EXPLORER_NETWORKS = ('polkadot', 'kusama')

def print_banner() -> None:
	print('\n{}{} Substrate auto payout {}\n'.format(MAGENTA_BG, BOLD, RESET))

def step(message: str) -> None:
	print('{} -> {}{}'.format(BOLD, message, RESET))

# Append one `<timestamp> - <outcome>` line to the log file.
def append_log(log_file: str, message: str, now=None) -> None:
	now = now or datetime.now()
	with open(log_file, 'a') as f:
		f.write('{} - {}\n'.format(now.strftime('%Y-%m-%d %H:%M:%S'), message))

# Subscan page of an extrinsic, for the networks we know Subscan indexes.
def explorer_link(network: str, tx_hash: str):
	if network not in EXPLORER_NETWORKS:
		return None
	return 'https://{}.subscan.io/extrinsic/{}'.format(network, tx_hash)

# Amount in tokens when the chain is known, raw planck otherwise.
def format_balance(amount: int, token: str, decimals) -> str:
	if token is None or not decimals:
		return '{} planck'.format(amount)
	return '{} {}'.format(amount / decimals, token)

def report_validator(validator: str, claimed: list, unclaimed: list) -> None:
	step('Claimed eras for validator {}: {}'.format(validator, claimed))
	step('Unclaimed eras for validator {}: {}'.format(validator, unclaimed))

# Everything after the chain connection: balance check, scan and submission.
def claim_rewards(chain, config: Config, address: str, signer) -> Outcome:
	network, token, decimals = chain.get_chain_info()

	available = chain.get_available_balance(address)
	if available == 0:
		raise InsufficientFundsError("Account {} doesn't have available funds".format(address))
	step('Account {} available balance is {}'.format(
		address,
		format_balance(available, token, decimals)
	))

	active_era = chain.get_active_era()
	step('Active era is {}'.format(active_era))

	batch = compute_batch(active_era, config.validators, chain, report=report_validator)

	if not batch:
		if config.log:
			append_log(config.log_file, NO_REWARDS)
		return Outcome('no_op', '{}, exiting!'.format(NO_REWARDS))

	step('Claiming {} payouts in one batch'.format(len(batch)))
	nonce = chain.get_account_nonce(address)
	tx_hash = chain.submit_batch(batch, signer, nonce)
	if config.log:
		append_log(config.log_file, 'Claimed rewards, transaction hash is {}'.format(tx_hash))
	link = explorer_link(network, tx_hash)
	if link:
		message = 'Check tx in Subscan: {}'.format(link)
	else:
		message = 'Transaction hash is {}'.format(tx_hash)
	return Outcome(
		'submitted',
		message,
		tx_hash,
		tuple(batch)
	)

# One payout run. Never exits the process; the outcome says how it ended.
#
# `chain` defaults to a `ChainQuery` over the configured Sidecar and node. `prompt` asks for the
# account password when the config doesn't hold one.
def run(config: Config, chain=None, prompt=getpass.getpass) -> Outcome:
	try:
		account = load_account(config.account_json)
		address = account['address']

		password = config.password
		if not password:
			password = prompt('Enter password for {}: '.format(address))
		if not password:
			return Outcome('no_op', 'No password given, exiting!')

		step('Importing account {}'.format(address))
		signer = load_keypair(account, password)

		step('Connecting to {}'.format(config.node))
		if chain is None:
			chain = ChainQuery(Sidecar(config.sidecar, config.timeout), config.node)
		with chain:
			return claim_rewards(chain, config, address, signer)
	except AutoPayoutError as e:
		return Outcome('failed', str(e))

def print_outcome(outcome: Outcome) -> None:
	if outcome.status == 'submitted':
		print('\n{}{}Success! {}{}{}\n'.format(GREEN, BOLD, WHITE, outcome.message, RESET))
	elif outcome.status == 'no_op':
		print('\n{}{}Warning! {}{}\n'.format(YELLOW, BOLD, outcome.message, RESET))
	else:
		print('{}{}Error! {}{}\n'.format(RED, BOLD, outcome.message, RESET))

def main(argv=None) -> None:
	print_banner()
	try:
		config = load_config(argv)
	except AutoPayoutError as e:
		print_outcome(Outcome('failed', str(e)))
		sys.exit(1)

	outcome = run(config)
	print_outcome(outcome)
	sys.exit(outcome.exit_code)

if __name__ == '__main__':
	main()
