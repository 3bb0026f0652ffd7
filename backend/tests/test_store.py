import pytest

from livequiz.errors import ConstraintViolation, NotFound
from livequiz.services.quiz.leaderboard import recompute, top_n
from livequiz.store import DocumentStore, LEADERBOARD, QUESTIONS, RESPONSES, SESSIONS


@pytest.fixture()
def store(flask_app):
    return DocumentStore()


def test_create_get_update_delete(store):
    created = store.create(QUESTIONS, {'text': 'Q?', 'options': ['a', 'b'], 'correct_answer': 1, 'time_limit': 15})
    assert created['options'] == ['a', 'b']
    assert store.get(QUESTIONS, created['id'])['text'] == 'Q?'
    # ids may arrive as strings from clients
    assert store.get(QUESTIONS, str(created['id']))['id'] == created['id']

    updated = store.update(QUESTIONS, created['id'], {'text': 'Q2?'})
    assert updated['text'] == 'Q2?'

    store.delete(QUESTIONS, created['id'])
    with pytest.raises(NotFound):
        store.get(QUESTIONS, created['id'])


def test_get_unknown_or_malformed_id(store):
    with pytest.raises(NotFound):
        store.get(QUESTIONS, 9999)
    with pytest.raises(NotFound):
        store.get(QUESTIONS, 'not-an-id')


def test_list_filters_orders_and_limits(store, make_user):
    users = [make_user(name) for name in ('ann', 'bob', 'cid')]
    session = store.create(SESSIONS, {'started_at': 1.0})
    for user, score in zip(users, (300, 900, 500)):
        store.create(LEADERBOARD, {
            'user_id': user.id, 'username': user.username, 'session_id': session['id'],
            'total_score': score, 'correct_answers': 1, 'total_questions': 1, 'average_response_time_ms': 1.0,
        })
    ranked = store.list(LEADERBOARD, {'session_id': session['id']}, order_by='total_score')
    assert [e['username'] for e in ranked] == ['bob', 'cid', 'ann']
    assert len(store.list(LEADERBOARD, {'session_id': session['id']}, order_by='total_score', limit=2)) == 2
    assert store.list(LEADERBOARD, {'session_id': session['id'] + 1}) == []


def test_duplicate_response_violates_constraint(store, make_user, make_question):
    user = make_user('ann')
    question = make_question('Q')
    session = store.create(SESSIONS, {'started_at': 1.0})
    fields = {
        'user_id': user.id, 'session_id': session['id'], 'question_id': question.id,
        'selected_answer': 0, 'is_correct': True, 'response_time_ms': 100, 'score': 995,
    }
    store.create(RESPONSES, fields)
    with pytest.raises(ConstraintViolation):
        store.create(RESPONSES, dict(fields, selected_answer=1))
    assert len(store.list(RESPONSES, {'user_id': user.id})) == 1


def test_leaderboard_recompute_matches_responses(store, make_user, make_question):
    user = make_user('ann')
    q1, q2, q3 = make_question('Q1'), make_question('Q2'), make_question('Q3')
    session = store.create(SESSIONS, {'started_at': 1.0})

    def answer(question, correct, ms, score):
        store.create(RESPONSES, {
            'user_id': user.id, 'session_id': session['id'], 'question_id': question.id,
            'selected_answer': 0, 'is_correct': correct, 'response_time_ms': ms, 'score': score,
        })

    answer(q1, True, 2000, 900)
    entry = recompute(store, user.id, user.username, session['id'])
    assert entry['total_score'] == 900
    assert entry['total_questions'] == 1

    answer(q2, False, 4000, 0)
    answer(q3, True, 6000, 700)
    entry = recompute(store, user.id, user.username, session['id'])
    # Running it again does not double count
    entry = recompute(store, user.id, user.username, session['id'])
    assert entry['total_score'] == 1600
    assert entry['correct_answers'] == 2
    assert entry['total_questions'] == 3
    assert entry['average_response_time_ms'] == pytest.approx(4000)
    assert len(store.list(LEADERBOARD, {'session_id': session['id']})) == 1
    assert top_n(store, session['id'], 5)[0]['user_id'] == user.id
