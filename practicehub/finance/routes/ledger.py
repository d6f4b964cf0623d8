"""Chart of accounts, journal entries and trial balance routes."""
from flask import jsonify, request
from flask_login import current_user

from finance import finance_bp
from finance.repositories import AccountRepository, JournalRepository
from finance.services import LedgerService
from core.auth.audit import log_event
from core.roles.decorators import require_permission
from core.utils.api_helpers import error_response, get_json_or_error, handle_api_errors, parse_int_arg

_account_repo = AccountRepository()
_journal_repo = JournalRepository()
_ledger = LedgerService()


@finance_bp.route('/api/v1/finance/chart-of-accounts', methods=['GET'])
@require_permission('finance', 'read')
def api_list_accounts():
    accounts = _account_repo.list(
        current_user.tenant_id, request.args.get('account_type'),
        active_only=request.args.get('include_inactive') != 'true')
    return jsonify({'success': True, 'accounts': accounts})


@finance_bp.route('/api/v1/finance/chart-of-accounts', methods=['POST'])
@require_permission('finance', 'create')
@handle_api_errors
def api_create_account():
    data, error = get_json_or_error()
    if error:
        return error
    for field in ('account_code', 'account_name', 'account_type'):
        if not (data.get(field) or '').strip():
            return error_response(f'{field} is required')
    account = _account_repo.create(
        current_user.tenant_id, data['account_code'].strip(), data['account_name'].strip(),
        data['account_type'], data.get('client_id'))
    return jsonify({'success': True, 'account': account}), 201


@finance_bp.route('/api/v1/finance/chart-of-accounts/seed', methods=['POST'])
@require_permission('finance', 'create')
@handle_api_errors
def api_seed_accounts():
    created = _ledger.seed_default_accounts(current_user.tenant_id)
    return jsonify({'success': True, 'created': created})


@finance_bp.route('/api/v1/finance/journal-entries', methods=['GET'])
@require_permission('finance', 'read')
def api_list_journal_entries():
    entries = _journal_repo.list(
        current_user.tenant_id, request.args.get('entry_type'),
        parse_int_arg('limit', 100, minimum=1, maximum=1000))
    return jsonify({'success': True, 'entries': entries})


@finance_bp.route('/api/v1/finance/journal-entries/<int:entry_id>', methods=['GET'])
@require_permission('finance', 'read')
def api_get_journal_entry(entry_id):
    entry = _journal_repo.get(current_user.tenant_id, entry_id)
    if not entry:
        return error_response('Journal entry not found', 404)
    return jsonify({'success': True, 'entry': entry})


@finance_bp.route('/api/v1/finance/trial-balance', methods=['GET'])
@require_permission('finance', 'read')
def api_trial_balance():
    return jsonify({'success': True, **_ledger.trial_balance(current_user.tenant_id)})


@finance_bp.route('/api/v1/finance/journal-entries', methods=['POST'])
@require_permission('finance', 'create')
@handle_api_errors
def api_create_journal_entry():
    """Manual (JV) journal entry; debits must equal credits."""
    data, error = get_json_or_error()
    if error:
        return error
    entry_id = _ledger.post_manual_entry(current_user.tenant_id, data, current_user.id)
    log_event('journal_entry_created', f'Posted manual journal entry {entry_id}', 'journal_entry', entry_id)
    return jsonify({'success': True, 'entry': _journal_repo.get(current_user.tenant_id, entry_id)}), 201
