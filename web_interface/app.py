#!/usr/bin/env python3
"""
Web interface for the Lending Vault
"""

from flask import Flask, jsonify, request, abort
import os
import sys

# Add repository root to path
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from lending_vault.accounts import VaultAccounts
from lending_vault.config import LendingConfig
from lending_vault.errors import LendingError
from lending_vault.keys import AccountKey, is_address
from lending_vault.ledger import Ledger
from lending_vault.plugin import PLUGIN_NAME
from lending_vault.rules import LendingRules
from lending_vault.tokens import BadgeCollection, StableCoin

app = Flask(__name__)

# Demo world (in production, contracts live on a real ledger)
world = {}

STARTING_BALANCE = 1000


def reset_world(config: LendingConfig = None) -> dict:
    """Deploy a fresh ledger with rules, a stable coin and a badge collection"""
    config = config or LendingConfig.from_env()

    ledger = Ledger()
    operator = AccountKey().address
    treasury = AccountKey().address

    usdc = StableCoin(ledger, operator)
    rules = LendingRules.from_config(ledger, operator, treasury, config)
    rules.set_stable_coin(operator, usdc.address, True)

    world.clear()
    world.update({
        'ledger': ledger,
        'operator': operator,
        'treasury': treasury,
        'usdc': usdc,
        'rules': rules,
        'badge': BadgeCollection(ledger, operator, "MagicBadge"),
        'accounts': VaultAccounts(ledger, config),
        'next_asset_id': 1
    })
    return world


def _body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400, description="Expected a JSON object")
    return data


def _field(data: dict, name: str, kind: type = str):
    value = data.get(name)
    if value is None or not isinstance(value, kind) or isinstance(value, bool):
        abort(400, description=f"Missing or invalid field {name!r}")
    if kind is str and not is_address(value):
        abort(400, description=f"{name!r} must be an address")
    return value


def _plugin(account_id: int):
    accounts = world['accounts']
    address = accounts.plugin_address_for(account_id, PLUGIN_NAME)
    return world['ledger'].contract_at(address)


@app.errorhandler(LendingError)
def lending_error(error):
    app.logger.info("Rejected: %s", error)
    return jsonify({'success': False, 'error': error.code, 'message': error.message}), 400


@app.errorhandler(400)
def bad_request(error):
    return jsonify({'success': False, 'error': 'BadRequest', 'message': error.description}), 400


@app.route('/')
def index():
    """Deployment summary"""
    return jsonify({
        'rules': world['rules'].address,
        'stable_coin': world['usdc'].address,
        'collection': world['badge'].address,
        'accounts': world['accounts'].address,
        'now': world['ledger'].now
    })


@app.route('/api/rules')
def get_rules():
    return jsonify(world['rules'].to_dict())


@app.route('/api/rules/special_terms', methods=['POST'])
def set_special_terms():
    """Operator sets special terms for a collection"""
    data = _body()
    collection = _field(data, 'collection') if 'collection' in data else world['badge'].address
    world['rules'].set_special_terms(
        world['operator'],
        collection,
        _field(data, 'deposit_fee', int),
        _field(data, 'lending_period', int)
    )
    fee, period = world['rules'].get_special_terms(collection)
    return jsonify({'success': True, 'deposit_fee': fee, 'lending_period': period})


@app.route('/api/users', methods=['POST'])
def create_user():
    """New depositor funded with stable coins and holding one badge"""
    address = AccountKey().address
    asset_id = world['next_asset_id']
    world['next_asset_id'] += 1

    world['usdc'].mint(world['operator'], address, STARTING_BALANCE)
    world['badge'].mint(world['operator'], address, asset_id)
    app.logger.info("Created user %s with badge #%s", address, asset_id)

    return jsonify({'success': True, 'address': address, 'asset_id': asset_id,
                    'balance': STARTING_BALANCE})


@app.route('/api/accounts', methods=['POST'])
def create_account():
    """Mint a vault, plug the lending plugin and bind the rules"""
    owner = _field(_body(), 'owner')
    accounts = world['accounts']

    account_id = accounts.mint(owner)
    plugin = accounts.plug(owner, account_id)
    plugin.set_lending_rules_address(owner, world['rules'].address)

    return jsonify({'success': True, 'account_id': account_id, 'plugin': plugin.address})


@app.route('/api/plugins/<int:account_id>')
def get_plugin(account_id):
    plugin = _plugin(account_id)
    if plugin is None:
        return jsonify({'error': 'Plugin not found'}), 404
    return jsonify(plugin.to_dict())


@app.route('/api/plugins/<int:account_id>/deposit', methods=['POST'])
def deposit(account_id):
    """Approve the badge and the fee on the depositor's behalf, then deposit"""
    plugin = _plugin(account_id)
    if plugin is None:
        return jsonify({'error': 'Plugin not found'}), 404

    data = _body()
    depositor = _field(data, 'depositor')
    asset_id = _field(data, 'asset_id', int)
    badge, usdc, rules = world['badge'], world['usdc'], world['rules']

    fee = rules.get_deposit_fee(badge.address)
    with world['ledger'].atomic():
        badge.approve(depositor, plugin.address, asset_id)
        usdc.approve(depositor, plugin.address, fee)
        record = plugin.deposit_asset(depositor, badge.address, asset_id, usdc.address)

    return jsonify({'success': True, 'fee': fee, 'record': record.to_dict()})


@app.route('/api/plugins/<int:account_id>/withdraw', methods=['POST'])
def withdraw(account_id):
    plugin = _plugin(account_id)
    if plugin is None:
        return jsonify({'error': 'Plugin not found'}), 404

    data = _body()
    recipient = _field(data, 'recipient') if data.get('recipient') is not None else None
    record = plugin.withdraw_asset(
        _field(data, 'caller'),
        world['badge'].address,
        _field(data, 'asset_id', int),
        recipient
    )
    return jsonify({'success': True, 'record': record.to_dict(),
                    'owner': world['badge'].owner_of(record.asset_id)})


@app.route('/api/plugins/<int:account_id>/transfer', methods=['POST'])
def transfer(account_id):
    """Move a held badge to another vault's lending plugin"""
    plugin = _plugin(account_id)
    if plugin is None:
        return jsonify({'error': 'Plugin not found'}), 404

    data = _body()
    caller = _field(data, 'caller')
    asset_id = _field(data, 'asset_id', int)
    destination = _field(data, 'destination_account_id', int)
    badge, usdc = world['badge'], world['usdc']

    fee = plugin.quote_transfer_fee(badge.address, destination)
    with world['ledger'].atomic():
        usdc.approve(caller, plugin.address, fee)
        record = plugin.transfer_asset_to_plugin(caller, badge.address, asset_id, destination,
                                                 usdc.address)

    return jsonify({'success': True, 'fee': fee, 'record': record.to_dict()})


@app.route('/api/plugins/<int:account_id>/rights/<int:asset_id>')
def rights(account_id, asset_id):
    plugin = _plugin(account_id)
    if plugin is None:
        return jsonify({'error': 'Plugin not found'}), 404

    return jsonify({
        'asset_id': asset_id,
        'holder': plugin.rights_holder_of(world['badge'].address, asset_id)
    })


@app.route('/api/clock/advance', methods=['POST'])
def advance_clock():
    seconds = _field(_body(), 'seconds', int)
    if seconds < 0:
        abort(400, description="Time cannot go backwards")
    return jsonify({'now': world['ledger'].advance(seconds)})


@app.route('/api/events')
def get_events():
    name = request.args.get('name')
    return jsonify({'events': [e.to_dict() for e in world['ledger'].events(name)]})


reset_world()

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 10000))
    app.run(
        host="0.0.0.0",
        port=port,
        debug=False
    )
