NS = '/ws'


def _events(client, name):
    return [pkt['args'][0] if pkt['args'] else None for pkt in client.get_received(NS) if pkt['name'] == name]


def _named(packets, name):
    return [pkt['args'][0] if pkt['args'] else None for pkt in packets if pkt['name'] == name]


def test_socket_connect_and_ping(sio_client):
    # Ensure we are connected to /ws
    if not sio_client.is_connected(NS):
        sio_client.connect(namespace=NS)
    assert sio_client.is_connected(NS)
    assert any(pkt['name'] == 'connected' for pkt in sio_client.get_received(NS))

    sio_client.emit('ping', {'n': 1}, namespace=NS)
    assert _events(sio_client, 'pong') == [{'n': 1}]


def test_join_unknown_user_reports_error(sio_client, runner):
    sio_client.get_received(NS)
    sio_client.emit('join-quiz', 4242, namespace=NS)
    errors = _events(sio_client, 'error')
    assert errors == [{'message': 'Failed to join quiz', 'code': 'NotFound'}]
    assert runner.status()['participantCount'] == 0


def test_quiz_flow_over_socket(sio_factory, runner, scheduler, admin_user, make_user, two_questions):
    question_a, _ = two_questions
    alice, bob = make_user('alice'), make_user('bob')
    alice_sock, bob_sock = sio_factory(), sio_factory()
    alice_sock.emit('join-quiz', alice.id, namespace=NS)
    bob_sock.emit('join-quiz', {'userId': bob.id}, namespace=NS)
    assert _events(alice_sock, 'joined')[0]['username'] == 'alice'
    bob_sock.get_received(NS)
    assert runner.status()['participantCount'] == 2

    runner.start(admin_user.id)
    started = _events(alice_sock, 'quiz-started')
    assert started[0]['totalQuestions'] == 2

    scheduler.tick(3)
    question = _events(alice_sock, 'new-question')[0]
    assert question['id'] == question_a.id
    assert 'correctAnswer' not in question
    bob_sock.get_received(NS)

    scheduler.tick(2)
    alice_sock.emit('submit-answer', {'questionId': question_a.id, 'selectedAnswer': 1}, namespace=NS)
    received = alice_sock.get_received(NS)
    result = _named(received, 'answer-result')
    assert result == [{'isCorrect': True, 'score': 900, 'responseTime': 2000, 'message': 'Correct! +900 points'}]
    board = _named(received, 'leaderboard-update')[0]['entries']
    assert board[0]['username'] == 'alice' and board[0]['totalScore'] == 900

    # the result is private; the leaderboard is not
    bob_received = bob_sock.get_received(NS)
    assert _named(bob_received, 'answer-result') == []
    assert len(_named(bob_received, 'leaderboard-update')) == 1

    alice_sock.emit('submit-answer', {'questionId': question_a.id, 'selectedAnswer': 1}, namespace=NS)
    assert _events(alice_sock, 'error') == [
        {'message': 'You have already answered this question', 'code': 'DuplicateAnswer'},
    ]

    scheduler.tick(8)
    ended = _events(bob_sock, 'question-ended')
    assert ended == [{'questionId': question_a.id, 'questionNumber': 1, 'totalQuestions': 2}]


def test_submit_without_join(sio_client, runner, scheduler, admin_user, two_questions):
    runner.start(admin_user.id)
    scheduler.tick(3)
    sio_client.get_received(NS)
    sio_client.emit('submit-answer', {'questionId': two_questions[0].id, 'selectedAnswer': 1}, namespace=NS)
    assert _events(sio_client, 'error')[0]['code'] == 'NotJoined'


def test_late_joiner_gets_current_question(sio_client, runner, scheduler, admin_user, make_user, two_questions):
    runner.start(admin_user.id)
    scheduler.tick(3)
    carol = make_user('carol')
    sio_client.get_received(NS)
    sio_client.emit('join-quiz', carol.id, namespace=NS)
    questions = _events(sio_client, 'new-question')
    assert len(questions) == 1
    assert questions[0]['questionNumber'] == 1


def test_admin_join_and_force_next(sio_factory, runner, scheduler, admin_user, make_user, two_questions):
    student = make_user('student')
    student_sock, admin_sock = sio_factory(), sio_factory()
    student_sock.emit('join-quiz', student.id, namespace=NS)

    student_sock.emit('admin-join', student.id, namespace=NS)
    student_sock.get_received(NS)
    student_sock.emit('force-next-question', namespace=NS)
    assert _events(student_sock, 'error') == [{'message': 'Admin access required', 'code': 'AdminRequired'}]

    admin_sock.emit('admin-join', admin_user.id, namespace=NS)
    assert _events(admin_sock, 'joined') == [{'room': 'admins'}]

    # nothing to advance while idle
    admin_sock.emit('force-next-question', namespace=NS)
    assert _events(admin_sock, 'error')[0]['code'] == 'NoActiveSession'

    runner.start(admin_user.id)
    scheduler.tick(3)
    student_sock.get_received(NS)
    # admins follow the participant stream
    assert len(_events(admin_sock, 'new-question')) == 1

    admin_sock.emit('force-next-question', namespace=NS)
    forced = _events(student_sock, 'new-question')
    assert [q['questionNumber'] for q in forced] == [2]


def test_admin_join_unknown_user(sio_client):
    sio_client.get_received(NS)
    sio_client.emit('admin-join', {'adminId': 999}, namespace=NS)
    assert _events(sio_client, 'error') == [{'message': 'Failed to join as admin', 'code': 'NotFound'}]


def test_disconnect_removes_participant(sio_factory, runner, make_user):
    alice = make_user('alice')
    sock = sio_factory()
    sock.emit('join-quiz', alice.id, namespace=NS)
    assert runner.status()['participantCount'] == 1
    sock.disconnect(namespace=NS)
    assert runner.status()['participantCount'] == 0


def test_stop_notifies_clients(sio_client, runner, admin_user, make_user, two_questions):
    alice = make_user('alice')
    sio_client.emit('join-quiz', alice.id, namespace=NS)
    runner.start(admin_user.id)
    sio_client.get_received(NS)
    runner.stop()
    ended = _events(sio_client, 'quiz-ended')
    assert ended[0]['wasForceEnded'] is True
