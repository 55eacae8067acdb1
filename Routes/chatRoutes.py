from flask import Blueprint
from Controllers.chatController import (
    send_message, delete_message, get_conversation, get_conversations,
    mark_as_read, get_unread_count
)

# ----------------------------
# Chat API routes (all require a token)
# ----------------------------
chat_routes = Blueprint('chat_routes', __name__, url_prefix='/api/chat')

# Messages
chat_routes.add_url_rule('', view_func=send_message, methods=['POST'])
chat_routes.add_url_rule('/<message_id>', view_func=delete_message, methods=['DELETE'])

# Conversations
chat_routes.add_url_rule('/conversations', view_func=get_conversations, methods=['GET'])
chat_routes.add_url_rule('/conversation/<food_post_id>/<other_user_id>', view_func=get_conversation, methods=['GET'])

# Read state
chat_routes.add_url_rule('/read/<food_post_id>/<sender_id>', view_func=mark_as_read, methods=['PUT'])
chat_routes.add_url_rule('/unread', view_func=get_unread_count, methods=['GET'])
