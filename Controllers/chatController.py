import logging

from flask import jsonify

from Models.foodPostModel import FoodPost
from Models.messageModel import Message, MessageType, serialize_messages
from Models.userModel import User
from Utils.appError import InvalidRequest, Unauthorized, NotFound
from Utils.auth_decorator import token_required
from Utils.db import find_by_id, reference_id
from Utils.pagination import get_page_params, pagination_meta
from Utils.request_utils import json_body

logger = logging.getLogger("chat")


def _require_user(user_id, message="User not found"):
    user = find_by_id(User, user_id)
    if not user:
        raise NotFound(message)
    return user


def _require_food_post(post_id):
    post = find_by_id(FoodPost, post_id)
    if not post:
        raise NotFound("Food post not found")
    return post


# =====================================================
# SEND / DELETE
# =====================================================
@token_required
def send_message(user):
    data = json_body()
    receiver_id = data.get('receiverId')
    food_post_id = data.get('foodPostId')

    if not receiver_id or not food_post_id:
        raise InvalidRequest("receiverId and foodPostId are required")

    receiver = _require_user(receiver_id, "Receiver not found")
    food_post = _require_food_post(food_post_id)

    if receiver.id == user.id:
        raise InvalidRequest("Cannot send message to yourself")

    msg = Message(
        sender=user,
        receiver=receiver,
        food_post=food_post,
        message=data.get('message'),
        message_type=data.get('messageType') or MessageType.TEXT.value
    )
    msg.save()

    logger.info(f"Message {msg.id} sent by {user.id} to {receiver.id} about {food_post.id}")
    return jsonify(msg.to_json(
        users={user.id: user.summary(), receiver.id: receiver.summary()},
        posts={food_post.id: food_post.summary()}
    )), 201


@token_required
def delete_message(user, message_id):
    msg = find_by_id(Message, message_id)
    if not msg:
        raise NotFound("Message not found")

    # Only the sender can delete their message
    if reference_id(msg, 'sender') != user.id:
        raise Unauthorized("Not authorized to delete this message")

    msg.delete()

    logger.info(f"Message {message_id} deleted by {user.id}")
    return jsonify({"message": "Message deleted"}), 200


# =====================================================
# CONVERSATIONS
# =====================================================
@token_required
def get_conversation(user, food_post_id, other_user_id):
    """One thread: messages between two users about one listing.

    Pages are cut newest-first and returned oldest-first. Reading the thread
    marks the other user's messages to the caller as read.
    """
    page, limit = get_page_params(default_limit=20)

    other_user = _require_user(other_user_id)
    food_post = _require_food_post(food_post_id)

    thread = Message.objects.between(food_post, user, other_user)
    total = thread.count()
    newest_first = list(
        thread.order_by('-created_at', '-id').skip((page - 1) * limit).limit(limit)
    )
    newest_first.reverse()

    marked = Message.objects.unread_from(food_post, other_user, user).mark_read()
    if marked:
        logger.info(f"{marked} message(s) from {other_user.id} marked read by {user.id}")

    return jsonify({
        "messages": serialize_messages(newest_first),
        "pagination": pagination_meta(page, limit, total),
        "markedAsRead": marked
    }), 200


@token_required
def get_conversations(user):
    return jsonify(Message.objects.conversations_for(user)), 200


@token_required
def mark_as_read(user, food_post_id, sender_id):
    sender = find_by_id(User, sender_id)
    food_post = find_by_id(FoodPost, food_post_id)
    marked = 0
    if sender and food_post:
        marked = Message.objects.unread_from(food_post, sender, user).mark_read()

    return jsonify({"message": "Messages marked as read", "markedAsRead": marked}), 200


@token_required
def get_unread_count(user):
    return jsonify({"unreadCount": Message.objects.unread_for(user).count()}), 200
