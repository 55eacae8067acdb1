from mongoengine import (
    Document, StringField, ReferenceField, DateTimeField, BooleanField,
    QuerySet, Q, ValidationError
)
from datetime import datetime
from enum import Enum

from Utils.db import reference_id


class MessageType(Enum):
    TEXT = "text"
    IMAGE = "image"


def conversation_key(user_a, user_b, food_post) -> str:
    """Stable id for "these two people talking about this listing"."""
    low, high = sorted([str(user_a), str(user_b)])
    return f"{low}-{high}-{food_post}"


# =====================================
#  QUERIES
# =====================================
class MessageQuerySet(QuerySet):

    def involving(self, user):
        return self.filter(Q(sender=user) | Q(receiver=user))

    def between(self, food_post, user, other):
        """Messages on one listing exchanged by two users, either direction."""
        return self.filter(
            Q(food_post=food_post) & (
                (Q(sender=user) & Q(receiver=other)) |
                (Q(sender=other) & Q(receiver=user))
            )
        )

    def unread_for(self, user):
        return self.filter(receiver=user, is_read=False)

    def unread_from(self, food_post, sender, receiver):
        return self.filter(food_post=food_post, sender=sender, receiver=receiver, is_read=False)

    def mark_read(self) -> int:
        """Flip is_read on every message in this queryset; returns how many flipped."""
        return self.filter(is_read=False).update(set__is_read=True)

    def conversations_for(self, user):
        """Group the user's messages into conversations, most recent first.

        Each message is keyed by (listing, other participant); scanning in
        (created_at, id) order means the last row seen per key is its latest
        message.
        """
        groups = {}
        rows = self.involving(user).order_by('created_at', 'id').as_pymongo()
        for row in rows:
            other = row['receiver'] if row['sender'] == user.id else row['sender']
            key = (row['food_post'], other)
            group = groups.get(key)
            if group is None:
                group = groups[key] = {
                    'food_post': row['food_post'],
                    'other_user': other,
                    'last': None,
                    'message_count': 0,
                    'unread_count': 0,
                }
            group['last'] = row
            group['message_count'] += 1
            if row['receiver'] == user.id and not row.get('is_read', False):
                group['unread_count'] += 1

        ordered = sorted(
            groups.values(),
            key=lambda g: (g['last'].get('created_at') or datetime.min, g['last']['_id']),
            reverse=True
        )

        last_messages = [self._document._from_son(g['last']) for g in ordered]
        users, posts = resolve_references(last_messages)

        conversations = []
        for group, last in zip(ordered, last_messages):
            conversations.append({
                'conversationId': conversation_key(user.id, group['other_user'], group['food_post']),
                'foodPost': posts.get(group['food_post']),
                'otherUser': users.get(group['other_user']),
                'lastMessage': last.to_json(users, posts),
                'messageCount': group['message_count'],
                'unreadCount': group['unread_count'],
            })
        return conversations


# =====================================
#  MESSAGE MODEL
# =====================================
class Message(Document):
    sender = ReferenceField('User', required=True)
    receiver = ReferenceField('User', required=True)
    food_post = ReferenceField('FoodPost', required=True)
    message = StringField(required=True, min_length=1, max_length=1000)
    message_type = StringField(choices=[e.value for e in MessageType], default=MessageType.TEXT.value)
    is_read = BooleanField(default=False)
    created_at = DateTimeField(default=datetime.utcnow)

    meta = {
        'collection': 'messages',
        'queryset_class': MessageQuerySet,
        'indexes': [
            ('sender', 'receiver', 'food_post'),
            ('receiver', 'is_read'),
            '-created_at',
            'is_read'
        ]
    }

    def clean(self):
        if isinstance(self.message, str):
            self.message = self.message.strip()
        sender_id = reference_id(self, 'sender')
        if sender_id is not None and sender_id == reference_id(self, 'receiver'):
            raise ValidationError("Cannot send message to yourself")

    @property
    def conversation_id(self) -> str:
        return conversation_key(
            reference_id(self, 'sender'),
            reference_id(self, 'receiver'),
            reference_id(self, 'food_post')
        )

    def to_json(self, users=None, posts=None):
        """Serialize the message.

        `users` / `posts` map ids to resolved summaries (see
        resolve_references); ids missing from a map serialize as None.
        """
        sender_id = reference_id(self, 'sender')
        receiver_id = reference_id(self, 'receiver')
        food_post_id = reference_id(self, 'food_post')
        users = users if users is not None else {}
        posts = posts if posts is not None else {}
        return {
            'id': str(self.id),
            'sender': users.get(sender_id),
            'receiver': users.get(receiver_id),
            'foodPost': posts.get(food_post_id),
            'message': self.message,
            'messageType': self.message_type,
            'isRead': self.is_read,
            'conversationId': self.conversation_id,
            'createdAt': self.created_at.isoformat() if self.created_at else None
        }


def resolve_references(messages):
    """Fetch every user and listing the messages point at, two queries total.

    Returns (users, posts) dicts keyed by ObjectId holding display summaries.
    """
    from Models.userModel import User
    from Models.foodPostModel import FoodPost

    user_ids, post_ids = set(), set()
    for m in messages:
        user_ids.add(reference_id(m, 'sender'))
        user_ids.add(reference_id(m, 'receiver'))
        post_ids.add(reference_id(m, 'food_post'))
    user_ids.discard(None)
    post_ids.discard(None)

    users = {u.id: u.summary() for u in User.objects(id__in=list(user_ids))} if user_ids else {}
    posts = {p.id: p.summary() for p in FoodPost.objects(id__in=list(post_ids))} if post_ids else {}
    return users, posts


def serialize_messages(messages):
    users, posts = resolve_references(messages)
    return [m.to_json(users, posts) for m in messages]
