from prometheus_client import Counter

FRIEND_REQUEST_ACTIONS = Counter(
    'friendlink_friend_request_actions_total',
    'Completed friend request transitions',
    ['action'],
)
CHATS_CREATED = Counter('friendlink_chats_created_total', 'Direct chats created on accept')
NOTIFICATIONS_PERSISTED = Counter(
    'friendlink_notifications_persisted_total',
    'Notification records written',
    ['type'],
)
PUSH_FAILURES = Counter('friendlink_push_failures_total', 'Notification pushes that failed or timed out')
