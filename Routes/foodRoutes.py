from flask import Blueprint
from Controllers.foodController import (
    create_food_post, get_food_posts, get_food_post_by_id, update_food_post,
    delete_food_post, get_user_food_posts, get_food_categories, get_my_food_posts
)

# ----------------------------
# Food listing API routes
# ----------------------------
food_routes = Blueprint('food_routes', __name__, url_prefix='/api/food')

# Feed and lookups
food_routes.add_url_rule('', view_func=get_food_posts, methods=['GET'])
food_routes.add_url_rule('/categories', view_func=get_food_categories, methods=['GET'])
food_routes.add_url_rule('/user/<user_id>', view_func=get_user_food_posts, methods=['GET'])
food_routes.add_url_rule('/my-posts', view_func=get_my_food_posts, methods=['GET'])

# Listing CRUD
food_routes.add_url_rule('', view_func=create_food_post, methods=['POST'])
food_routes.add_url_rule('/<post_id>', view_func=get_food_post_by_id, methods=['GET'])
food_routes.add_url_rule('/<post_id>', view_func=update_food_post, methods=['PUT'])
food_routes.add_url_rule('/<post_id>', view_func=delete_food_post, methods=['DELETE'])
