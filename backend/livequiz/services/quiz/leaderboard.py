from typing import Any, Dict, List

from livequiz.store import LEADERBOARD, RESPONSES, DocumentStore


def recompute(store: DocumentStore, user_id, username: str, session_id) -> Dict[str, Any]:
    """Rebuild one user's standing for a session from their stored responses.

    Totals are always derived from the responses themselves, so running this
    twice (or after a failed write) converges on the same row.
    """
    responses = store.list(RESPONSES, {'user_id': user_id, 'session_id': session_id})
    total_questions = len(responses)
    totals = {
        'total_score': sum(r['score'] for r in responses),
        'correct_answers': sum(1 for r in responses if r['is_correct']),
        'total_questions': total_questions,
        'average_response_time_ms': (
            sum(r['response_time_ms'] for r in responses) / total_questions if total_questions else 0.0
        ),
    }
    existing = store.list(LEADERBOARD, {'user_id': user_id, 'session_id': session_id}, limit=1)
    if existing:
        return store.update(LEADERBOARD, existing[0]['id'], totals)
    return store.create(LEADERBOARD, dict(totals, user_id=user_id, username=username, session_id=session_id))


def top_n(store: DocumentStore, session_id, n=None) -> List[Dict[str, Any]]:
    return store.list(LEADERBOARD, {'session_id': session_id}, order_by='total_score', limit=n)


def entry_payload(entry: Dict[str, Any]) -> Dict[str, Any]:
    """Wire shape of a leaderboard row."""
    return {
        'userId': entry['user_id'],
        'username': entry['username'],
        'totalScore': entry['total_score'],
        'correctAnswers': entry['correct_answers'],
        'totalQuestions': entry['total_questions'],
        'averageResponseTimeMillis': entry['average_response_time_ms'],
    }
