"""Report aggregations over plain task rows.

Every function here is pure: it takes the row dicts the repositories
return (dates may be ISO strings, dates or datetimes) plus `now`, and
returns JSON-ready dicts.
"""
import math
from collections import Counter, OrderedDict
from datetime import date, datetime, timedelta

COMPLIANCE_KEYWORDS = ('tax', 'compliance', 'filing', 'return', 'audit', 'vat')
RISK_WEIGHTS = {'critical': 4, 'high': 3, 'medium': 2, 'low': 1}
UPCOMING_WINDOW_DAYS = 30


# ============== Helpers ==============

def to_datetime(value):
    """Coerce a row value to a naive datetime, or None."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        result = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            result = datetime.fromisoformat(text)
        except ValueError:
            return None
    if result.tzinfo is not None:
        result = result.replace(tzinfo=None)
    return result


def _round(value):
    """Round half up, like the dashboards do."""
    return int(math.floor(value + 0.5))


def _percent(part, whole):
    return _round(part / whole * 100) if whole else 0


def _days_between(start, end):
    return (end - start).total_seconds() / 86400


def completed_status_ids(statuses):
    return {s['id'] for s in statuses if (s.get('name') or '').strip().lower() == 'completed'}


def is_compliance_task(task):
    if task.get('compliance_deadline'):
        return True
    details = (task.get('task_details') or '').lower()
    return any(word in details for word in COMPLIANCE_KEYWORDS)


def _is_completed(task, completed_ids):
    return task.get('status_id') in completed_ids


def _deadline_passed(task, completed_ids, now):
    """Regulatory deadline is in the past and the task is still open."""
    if _is_completed(task, completed_ids):
        return False
    deadline = to_datetime(task.get('compliance_deadline'))
    return deadline is not None and deadline < now


def _due_passed(task, completed_ids, now):
    if _is_completed(task, completed_ids):
        return False
    due = to_datetime(task.get('due_date'))
    return due is not None and due < now


def _completion_days(task):
    created = to_datetime(task.get('created_at'))
    updated = to_datetime(task.get('updated_at'))
    if not created or not updated:
        return None
    return math.ceil(_days_between(created, updated))


def _average_completion_days(completed):
    days = [d for d in (_completion_days(t) for t in completed) if d is not None]
    return _round(sum(days) / len(days)) if days else 0


def _on_time(task):
    updated = to_datetime(task.get('updated_at'))
    due = to_datetime(task.get('due_date'))
    if not updated or not due:
        return False
    # due dates are whole days, finishing any time on the day counts
    return updated < due + timedelta(days=1)


def build_lookups(clients=(), entities=(), countries=(), jurisdictions=(), users=()):
    """Index lookup rows by id."""
    return {
        'clients': {c['id']: c for c in clients},
        'entities': {e['id']: e for e in entities},
        'countries': {c['id']: c for c in countries},
        'jurisdictions': {j['id']: j for j in jurisdictions},
        'users': {u['id']: u for u in users},
    }


# ============== Filtering ==============

def _task_country(task, lookups):
    client = lookups['clients'].get(task.get('client_id'))
    if client and client.get('country_id'):
        return client['country_id']
    entity = lookups['entities'].get(task.get('entity_id'))
    return entity.get('country_id') if entity else None


def filter_tasks(tasks, filters, lookups, now):
    """Apply ReportFilters to task rows. risk_level is applied by risk_assessment."""
    cutoff = now - timedelta(days=filters.timeframe_days) if filters.timeframe_days else None
    search = filters.search.lower() if filters.search else None
    result = []
    for task in tasks:
        if cutoff is not None:
            created = to_datetime(task.get('created_at'))
            if created is None or created < cutoff:
                continue
        if filters.country_id and _task_country(task, lookups) != filters.country_id:
            continue
        if filters.client_id and task.get('client_id') != filters.client_id:
            continue
        if filters.entity_id and task.get('entity_id') != filters.entity_id:
            continue
        if filters.assignee_id and task.get('assignee_id') != filters.assignee_id:
            continue
        if filters.entity_type_id or filters.tax_jurisdiction_id:
            entity = lookups['entities'].get(task.get('entity_id'))
            if not entity:
                continue
            if filters.entity_type_id and entity.get('entity_type_id') != filters.entity_type_id:
                continue
            if filters.tax_jurisdiction_id and entity.get('tax_jurisdiction_id') != filters.tax_jurisdiction_id:
                continue
        if search and search not in (task.get('task_details') or '').lower():
            continue
        if filters.compliance_only and not is_compliance_task(task):
            continue
        result.append(task)
    return result


# ============== Risk ==============

def risk_level_for(score):
    if score >= 70:
        return 'critical'
    if score >= 50:
        return 'high'
    if score >= 30:
        return 'medium'
    return 'low'


def task_risk_score(task, completed_ids, now):
    """Score an open task: base 20, plus overdue days on the deadline, plus age."""
    if _is_completed(task, completed_ids):
        return 0
    score = 20
    deadline = to_datetime(task.get('compliance_deadline'))
    if deadline is not None and deadline < now:
        score += min((now - deadline).days * 5, 50)
    created = to_datetime(task.get('created_at'))
    if created is not None:
        score += min(max((now - created).days, 0) * 0.5, 30)
    return score


def _level_counts(rows, key):
    grouped = OrderedDict()
    for row in rows:
        name = key(row) or 'Unknown'
        counts = grouped.setdefault(name, {'critical': 0, 'high': 0, 'medium': 0, 'low': 0})
        counts[row['risk_level']] += 1
    return [dict(name=name, **counts) for name, counts in grouped.items()][:10]


def _mitigation_actions(counts):
    actions = []
    if counts['critical']:
        actions.append({
            'priority': 'Immediate',
            'action': 'Address critical overdue compliance tasks',
            'count': counts['critical'],
            'impact': 'High',
        })
    if counts['high']:
        actions.append({
            'priority': 'This Week',
            'action': 'Review high-risk tasks and allocate resources',
            'count': counts['high'],
            'impact': 'Medium',
        })
    return actions


def risk_assessment(tasks, statuses, lookups, now, risk_level=None):
    completed_ids = completed_status_ids(statuses)
    scored = []
    for task in tasks:
        score = task_risk_score(task, completed_ids, now)
        scored.append(dict(task, risk_score=score, risk_level=risk_level_for(score)))

    counts = Counter(t['risk_level'] for t in scored)
    counts = {level: counts.get(level, 0) for level in RISK_WEIGHTS}
    total = sum(counts.values())
    weighted = sum(RISK_WEIGHTS[level] * n for level, n in counts.items())
    overall = weighted / (4 * total) * 100 if total else 0

    final = [t for t in scored if t['risk_level'] == risk_level] if risk_level else scored

    def entity_name(task):
        entity = lookups['entities'].get(task.get('entity_id'))
        return entity.get('name') if entity else None

    def jurisdiction_name(task):
        entity = lookups['entities'].get(task.get('entity_id'))
        jurisdiction = lookups['jurisdictions'].get(entity.get('tax_jurisdiction_id')) if entity else None
        return jurisdiction.get('name') if jurisdiction else None

    top = sorted(final, key=lambda t: t['risk_score'], reverse=True)[:20]
    return {
        'overall_risk': round(overall, 1),
        'critical_risks': counts['critical'],
        'high_risks': counts['high'],
        'medium_risks': counts['medium'],
        'low_risks': counts['low'],
        'total_risks': total,
        'risk_by_entity': _level_counts(final, entity_name),
        'risk_by_jurisdiction': _level_counts(final, jurisdiction_name),
        'compliance_risks': top,
        'mitigation_actions': _mitigation_actions(counts),
    }


def _entity_risk_level(overdue):
    if overdue > 2:
        return 'Critical'
    if overdue > 0:
        return 'High'
    return 'Low'


# ============== Compliance ==============

def compliance_overview(tasks, statuses, lookups, now):
    completed_ids = completed_status_ids(statuses)
    compliance = [t for t in tasks if is_compliance_task(t)]
    completed = [t for t in compliance if _is_completed(t, completed_ids)]
    overdue = [t for t in compliance if _deadline_passed(t, completed_ids, now)]

    upcoming = []
    for task in compliance:
        if _is_completed(task, completed_ids):
            continue
        target = to_datetime(task.get('compliance_deadline') or task.get('due_date'))
        if target is None:
            continue
        days_until = math.ceil(_days_between(now, target))
        if 0 <= days_until <= UPCOMING_WINDOW_DAYS:
            upcoming.append(task)

    entities_at_risk = []
    for entity in lookups['entities'].values():
        entity_tasks = [t for t in compliance if t.get('entity_id') == entity['id']]
        if not entity_tasks:
            continue
        entity_overdue = sum(1 for t in entity_tasks if _deadline_passed(t, completed_ids, now))
        client = lookups['clients'].get(entity.get('client_id'))
        country = lookups['countries'].get(entity.get('country_id'))
        entities_at_risk.append({
            'entity_id': entity['id'],
            'entity_name': entity.get('name'),
            'client_name': client.get('display_name') if client else 'Unknown',
            'jurisdiction': country.get('name') if country else 'Unknown',
            'total_tasks': len(entity_tasks),
            'overdue_count': entity_overdue,
            'risk_level': _entity_risk_level(entity_overdue),
        })

    status_breakdown = []
    for status in statuses:
        count = sum(1 for t in compliance if t.get('status_id') == status['id'])
        if count:
            status_breakdown.append({'name': status['name'], 'value': count})

    by_country = []
    for country in lookups['countries'].values():
        entity_ids = {e['id'] for e in lookups['entities'].values() if e.get('country_id') == country['id']}
        country_tasks = [t for t in compliance if t.get('entity_id') in entity_ids]
        if not country_tasks:
            continue
        done = sum(1 for t in country_tasks if _is_completed(t, completed_ids))
        by_country.append({
            'name': country['name'],
            'total': len(country_tasks),
            'completed': done,
            'rate': _percent(done, len(country_tasks)),
        })

    return {
        'total_compliance': len(compliance),
        'completed_compliance': len(completed),
        'overdue_regulatory': len(overdue),
        'upcoming_deadlines': len(upcoming),
        'compliance_rate': _percent(len(completed), len(compliance)),
        'risk_score': min(100, len(overdue) * 50 + len(upcoming) * 10),
        'entities_at_risk': entities_at_risk,
        'status_breakdown': status_breakdown,
        'country_compliance': by_country,
    }


def jurisdiction_analysis(tasks, statuses, lookups, now):
    """Compliance health per tax jurisdiction, through each task's entity."""
    completed_ids = completed_status_ids(statuses)
    compliance = [t for t in tasks if is_compliance_task(t)]
    results = []
    for jurisdiction in lookups['jurisdictions'].values():
        entity_ids = {e['id'] for e in lookups['entities'].values()
                      if e.get('tax_jurisdiction_id') == jurisdiction['id']}
        if not entity_ids:
            continue
        j_tasks = [t for t in compliance if t.get('entity_id') in entity_ids]
        done = sum(1 for t in j_tasks if _is_completed(t, completed_ids))
        overdue = sum(1 for t in j_tasks
                      if _deadline_passed(t, completed_ids, now) or _due_passed(t, completed_ids, now))
        country = lookups['countries'].get(jurisdiction.get('country_id'))
        results.append({
            'jurisdiction_id': jurisdiction['id'],
            'name': jurisdiction['name'],
            'country': country.get('name') if country else None,
            'entity_count': len(entity_ids),
            'total_tasks': len(j_tasks),
            'completed_tasks': done,
            'overdue_tasks': overdue,
            'compliance_rate': _percent(done, len(j_tasks)),
            'risk_level': _entity_risk_level(overdue),
        })

    total_tasks = sum(r['total_tasks'] for r in results)
    total_done = sum(r['completed_tasks'] for r in results)
    return {
        'jurisdictions': results,
        'summary': {
            'total_jurisdictions': len(results),
            'total_tasks': total_tasks,
            'overall_compliance_rate': _percent(total_done, total_tasks),
            'high_risk_jurisdictions': sum(1 for r in results if r['risk_level'] in ('Critical', 'High')),
        },
    }


# ============== Team / performance ==============

def _productivity(completion_rate, efficiency, avg_days):
    score = 50
    if completion_rate >= 80:
        score += 20
    elif completion_rate >= 60:
        score += 10
    if efficiency >= 90:
        score += 20
    elif efficiency >= 70:
        score += 10
    if avg_days <= 3:
        score += 10
    elif avg_days <= 5:
        score += 5
    elif avg_days > 10:
        score -= 10
    return min(100, max(0, score))


def _performance_rating(efficiency, avg_days):
    if efficiency >= 90 and avg_days <= 3:
        return 'Excellent'
    if efficiency >= 80 and avg_days <= 5:
        return 'Good'
    if efficiency < 60 or avg_days > 10:
        return 'Needs Improvement'
    return 'Average'


def _workload(total):
    if total <= 5:
        return 'Light'
    if total <= 10:
        return 'Moderate'
    return 'Heavy'


def team_efficiency(tasks, statuses, users, now):
    completed_ids = completed_status_ids(statuses)
    members = []
    for user in users:
        user_tasks = [t for t in tasks if t.get('assignee_id') == user['id']]
        if not user_tasks:
            continue
        completed = [t for t in user_tasks if _is_completed(t, completed_ids)]
        pending = len(user_tasks) - len(completed)
        overdue = sum(1 for t in user_tasks if _due_passed(t, completed_ids, now))
        completion_rate = _percent(len(completed), len(user_tasks))
        avg_days = _average_completion_days(completed)
        efficiency = _percent(sum(1 for t in completed if _on_time(t)), len(completed))
        members.append({
            'user_id': user['id'],
            'name': user.get('display_name'),
            'total_tasks': len(user_tasks),
            'completed_tasks': len(completed),
            'pending_tasks': pending,
            'overdue_tasks': overdue,
            'completion_rate': completion_rate,
            'avg_completion_days': avg_days,
            'efficiency_score': efficiency,
            'productivity_score': _productivity(completion_rate, efficiency, avg_days),
            'performance_rating': _performance_rating(efficiency, avg_days),
            'workload': _workload(len(user_tasks)),
        })

    members.sort(key=lambda m: m['productivity_score'], reverse=True)
    total = sum(m['total_tasks'] for m in members)
    done = sum(m['completed_tasks'] for m in members)
    count = len(members)
    return {
        'team_members': members,
        'team_metrics': {
            'total_team_tasks': total,
            'total_completed': done,
            'team_completion_rate': _percent(done, total),
            'avg_team_efficiency': _round(sum(m['efficiency_score'] for m in members) / count) if count else 0,
            'avg_team_productivity': _round(sum(m['productivity_score'] for m in members) / count) if count else 0,
            'active_members': count,
            'top_performer': members[0] if members else None,
        },
    }


def task_performance(tasks, statuses, now):
    completed_ids = completed_status_ids(statuses)
    completed = [t for t in tasks if _is_completed(t, completed_ids)]
    overdue = sum(1 for t in tasks if _due_passed(t, completed_ids, now))
    on_time = sum(1 for t in completed if _on_time(t))

    by_status = []
    for status in statuses:
        count = sum(1 for t in tasks if t.get('status_id') == status['id'])
        if count:
            by_status.append({'name': status['name'], 'value': count})

    by_type = Counter(t.get('task_type') or 'Regular' for t in tasks)
    by_month = Counter()
    for task in tasks:
        created = to_datetime(task.get('created_at'))
        if created:
            by_month[created.strftime('%Y-%m')] += 1

    return {
        'total_tasks': len(tasks),
        'completed_tasks': len(completed),
        'overdue_tasks': overdue,
        'on_time_rate': _percent(on_time, len(tasks)),
        'avg_completion_days': _average_completion_days(completed),
        'by_status': by_status,
        'by_task_type': [{'name': k, 'value': v} for k, v in sorted(by_type.items())],
        'by_month': [{'month': k, 'value': v} for k, v in sorted(by_month.items())],
    }
