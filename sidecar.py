import json
import requests

from errors import ChainConnectionError

class Sidecar:
	# Where is the sidecar.
	def __init__(self, endpoint: str, timeout: float = 30.0):
		if endpoint[-1] != '/':
			endpoint = endpoint + '/'
		self.endpoint = endpoint
		self.timeout = timeout

	# Request some data from sidecar.
	def sidecar_get(self, path: str, params: dict = None) -> dict:
		try:
			response = requests.get(path, params=params or {}, timeout=self.timeout)
		except requests.RequestException as e:
			raise ChainConnectionError(
				'Unable to connect to sidecar at {}: {}'.format(self.endpoint, e)
			) from e

		return self.process_response(response)

	# Post some data to the sidecar.
	def sidecar_post(self, path: str, post_data: str) -> dict:
		tx_headers = {'Content-type' : 'application/json'}
		try:
			response = requests.post(
				path,
				data=post_data,
				headers=tx_headers,
				timeout=self.timeout
			)
		except requests.RequestException as e:
			raise ChainConnectionError(
				'Unable to connect to sidecar at {}: {}'.format(self.endpoint, e)
			) from e

		return self.process_response(response)

	# Process HTTP response. Errors are returned as `{'error': message}` so callers can decide
	# whether they are fatal.
	def process_response(self, response) -> dict:
		if response.ok:
			try:
				return response.json()
			except ValueError:
				return { 'error' : 'Response Error: body is not JSON' }

		error_message = 'Response Error: {}'.format(response.status_code)
		try:
			body = response.json()
		except ValueError:
			body = None
		if isinstance(body, dict):
			detail = body.get('message') or body.get('error')
			if detail:
				error_message = '{} ({})'.format(error_message, detail)
		return { 'error' : error_message }

	def account_staking_info(self, address: str, block=None) -> dict:
		path = '{}accounts/{}/staking-info'.format(self.endpoint, address)
		params = {}
		if block:
			params['at'] = str(block)
		return self.sidecar_get(path, params)

	def account_balance_info(self, address: str, block=None) -> dict:
		path = '{}accounts/{}/balance-info'.format(self.endpoint, address)
		params = {}
		if block:
			params['at'] = str(block)
		return self.sidecar_get(path, params)

	def staking_progress(self, block=None) -> dict:
		path = '{}pallets/staking/progress'.format(self.endpoint)
		params = {}
		if block:
			params['at'] = str(block)
		return self.sidecar_get(path, params)

	# Read a storage item of a pallet, e.g. `pallet_storage('staking', 'erasRewardPoints', [era])`.
	def pallet_storage(self, pallet: str, item: str, keys: list = None, block=None) -> dict:
		path = '{}pallets/{}/storage/{}'.format(self.endpoint, pallet, item)
		params = {}
		if keys:
			params['keys[]'] = [str(k) for k in keys]
		if block:
			params['at'] = str(block)
		return self.sidecar_get(path, params)

	def runtime_spec(self, block=None) -> dict:
		path = '{}runtime/spec'.format(self.endpoint)
		params = {}
		if block:
			params['at'] = str(block)
		return self.sidecar_get(path, params)

	# Submit a signed, hex encoded extrinsic.
	def transaction(self, transaction: str) -> dict:
		path = '{}transaction'.format(self.endpoint)
		tx_data = json.dumps({'tx': transaction})
		return self.sidecar_post(path, tx_data)

if __name__ == "__main__":
	s = Sidecar('http://127.0.0.1:8080/')
	spec = s.runtime_spec()
	if 'specName' in spec.keys():
		print('Connected to Sidecar! Runtime is {} v{}'
			.format(spec['specName'], spec['specVersion']))
	else:
		print(spec)
