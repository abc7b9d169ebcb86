import argparse
import json
import os.path
from dataclasses import dataclass

from errors import ConfigError

VERSION = '1.0.0'

DEFAULT_CONFIG_FILE = 'config.json'
DEFAULT_SIDECAR = 'http://127.0.0.1:8080/'
DEFAULT_NODE = 'ws://127.0.0.1:9944'
DEFAULT_LOG_FILE = 'autopayout.log'

@dataclass(frozen=True)
class Config:
	account_json: str
	validators: tuple
	password: str = None
	sidecar: str = DEFAULT_SIDECAR
	node: str = DEFAULT_NODE
	log: bool = False
	log_file: str = DEFAULT_LOG_FILE
	timeout: float = 30.0

class ArgParser():
	def __init__(self) -> None:
		self.parser = argparse.ArgumentParser(
			prog='autopayout',
			description='Claim staking rewards of your validators in one batch.',
			usage='autopayout -a keystores/account.json -p password -v validator_stash_address'
		)
		self.parser.add_argument(
			'-a', '--account',
			help='Account json file path.',
			type=str
		)
		self.parser.add_argument(
			'-p', '--password',
			help='Account password, or stdin if this is not set.',
			type=str
		)
		self.parser.add_argument(
			'-v', '--validator',
			help='Validator stash address. Can be given several times.',
			type=str,
			nargs='+',
			action='extend'
		)
		self.parser.add_argument(
			'-l', '--log',
			help='Log (append) results to the log file.',
			default=None,
			action='store_true'
		)
		self.parser.add_argument(
			'-c', '--config',
			help='JSON config file. Command line options take precedence.',
			type=str
		)
		self.parser.add_argument(
			'--sidecar',
			help='Endpoint for Sidecar.',
			type=str
		)
		self.parser.add_argument(
			'--node',
			help='Websocket endpoint of the node used to sign the batch.',
			type=str
		)
		self.parser.add_argument(
			'-V', '--version',
			action='version',
			version='%(prog)s {}'.format(VERSION)
		)

	def parse_args(self, argv=None) -> dict:
		args = self.parser.parse_args(argv)

		return {
			'account': args.account,
			'password': args.password,
			'validators': args.validator,
			'log': args.log,
			'config': args.config,
			'sidecar': args.sidecar,
			'node': args.node,
		}

# Read the JSON config file. An explicitly named file must exist; the default one is optional.
def read_config_file(path: str = None) -> dict:
	if path is None:
		if not os.path.isfile(DEFAULT_CONFIG_FILE):
			return {}
		path = DEFAULT_CONFIG_FILE
	try:
		with open(path, mode='r') as config_file:
			data = json.loads(config_file.read())
	except OSError as e:
		raise ConfigError("Can't open {}".format(path)) from e
	except ValueError as e:
		raise ConfigError('Invalid config file {}: {}'.format(path, e)) from e
	if not isinstance(data, dict):
		raise ConfigError('Invalid config file {}: expected an object'.format(path))
	return data

# Merge command line options over the config file and build the run configuration.
def build_config(inputs: dict, file_config: dict) -> Config:
	def pick(key, file_key, default=None):
		if inputs.get(key) is not None:
			return inputs[key]
		if file_config.get(file_key) is not None:
			return file_config[file_key]
		return default

	account_json = pick('account', 'accountJSON')
	if not account_json:
		raise ConfigError('No account json file given')

	validators = pick('validators', 'validators', [])
	if isinstance(validators, str):
		validators = [validators]
	if not validators:
		raise ConfigError('No validators given')

	timeout = file_config.get('timeout', 30.0)
	try:
		timeout = float(timeout)
	except (TypeError, ValueError) as e:
		raise ConfigError('Invalid timeout {!r}, expected seconds'.format(timeout)) from e
	if timeout <= 0:
		raise ConfigError('Invalid timeout {!r}, expected seconds'.format(timeout))

	return Config(
		account_json=account_json,
		validators=tuple(validators),
		password=pick('password', 'password'),
		sidecar=pick('sidecar', 'sidecar', DEFAULT_SIDECAR),
		node=pick('node', 'nodeWS', DEFAULT_NODE),
		log=bool(pick('log', 'log', False)),
		log_file=file_config.get('logFile') or DEFAULT_LOG_FILE,
		timeout=timeout,
	)

def load_config(argv=None) -> Config:
	inputs = ArgParser().parse_args(argv)
	return build_config(inputs, read_config_file(inputs['config']))

# Read the exported account (keystore) json file.
def load_account(path: str) -> dict:
	try:
		with open(path, mode='r', encoding='utf-8') as account_file:
			account = json.loads(account_file.read())
	except OSError as e:
		raise ConfigError("Can't open {}".format(path)) from e
	except ValueError as e:
		raise ConfigError('Invalid account file {}: {}'.format(path, e)) from e
	if not isinstance(account, dict) or 'address' not in account:
		raise ConfigError('Account file {} has no address'.format(path))
	return account
