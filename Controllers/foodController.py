import json
import logging
from datetime import datetime, timezone

from flask import current_app, request, jsonify
from mongoengine import Q

from Models.foodPostModel import FoodPost, Coordinates, ImageMetadata
from Models.userModel import User
from Utils.appError import InvalidRequest, Unauthorized, NotFound
from Utils.auth_decorator import token_required, optional_token
from Utils.db import find_by_id, reference_id
from Utils.pagination import get_page_params, paginate
from Utils.request_utils import json_body

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ['name', 'description', 'category', 'expiryDate', 'location', 'quantity', 'condition']


# ----------------------------------------
# Request parsing helpers
# ----------------------------------------
def _payload():
    """JSON body, or the form fields of a multipart upload."""
    data = json_body(default_empty=False)
    if data is None:
        data = request.form.to_dict()
    return data


def parse_datetime(value, field):
    """Parse an ISO-8601 date/datetime into a naive UTC datetime."""
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip().replace('Z', '+00:00'))
        except ValueError:
            raise InvalidRequest(f"Invalid date format for {field}")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_bool(value):
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


def parse_coordinates(value):
    if value in (None, '', 'null'):
        return None
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            raise InvalidRequest("coordinates must be an object with latitude and longitude")
    if not isinstance(value, dict):
        raise InvalidRequest("coordinates must be an object with latitude and longitude")
    try:
        latitude = value.get('latitude')
        longitude = value.get('longitude')
        return Coordinates(
            latitude=float(latitude) if latitude not in (None, '') else None,
            longitude=float(longitude) if longitude not in (None, '') else None
        )
    except (TypeError, ValueError):
        raise InvalidRequest("coordinates must be numeric")


def _apply_fields(post, data):
    for json_name, attr in FoodPost.EDITABLE_FIELDS.items():
        if json_name not in data:
            continue
        value = data[json_name]
        if json_name == 'expiryDate':
            if value in (None, ''):
                continue
            value = parse_datetime(value, 'expiryDate')
        elif json_name == 'isAvailable':
            value = parse_bool(value)
        elif json_name == 'coordinates':
            value = parse_coordinates(value)
        elif json_name == 'imageUrl':
            value = value or ''
        elif value in (None, ''):
            # Blank text fields leave the stored value unchanged
            continue
        setattr(post, attr, value)


def _upload_image():
    """Upload the request's image file, if any, through the media delegate."""
    image = request.files.get('image')
    if image is None or not image.filename:
        return None
    return current_app.extensions['media'].upload(image)


def _owner_summaries(posts, detailed=False):
    ids = {reference_id(p, 'user') for p in posts}
    ids.discard(None)
    if not ids:
        return {}
    return {u.id: u.summary(detailed=detailed) for u in User.objects(id__in=list(ids))}


def _serialize(posts, detailed=False):
    owners = _owner_summaries(posts, detailed=detailed)
    return [p.to_json(owner=owners.get(reference_id(p, 'user'))) for p in posts]


def _sort_key():
    sort_by = request.args.get('sortBy', 'createdAt')
    sort_order = request.args.get('sortOrder', 'desc').lower()
    if sort_by not in FoodPost.SORT_FIELDS:
        raise InvalidRequest(f"sortBy must be one of: {', '.join(FoodPost.SORT_FIELDS)}")
    if sort_order not in ('asc', 'desc'):
        raise InvalidRequest("sortOrder must be 'asc' or 'desc'")
    prefix = '-' if sort_order == 'desc' else ''
    return f"{prefix}{FoodPost.SORT_FIELDS[sort_by]}"


def _get_owned_post(user, post_id, action):
    post = find_by_id(FoodPost, post_id)
    if not post:
        raise NotFound("Food post not found")
    if reference_id(post, 'user') != user.id:
        raise Unauthorized(f"Not authorized to {action} this food post")
    return post


# ----------------------------------------
# Endpoints
# ----------------------------------------
@token_required
def create_food_post(user):
    """Create a new listing, optionally with an uploaded image."""
    data = _payload()

    missing = [field for field in REQUIRED_FIELDS if not data.get(field)]
    if missing:
        raise InvalidRequest(f"Missing required fields: {', '.join(missing)}", errors=[
            f"{field} is required" for field in missing
        ])

    post = FoodPost(user=user)
    _apply_fields(post, data)
    post.validate()

    upload = _upload_image()
    if upload:
        post.image_url = upload['url']
        post.image_metadata = ImageMetadata.from_upload(upload)

    post.save()

    logger.info(f"Food post created by {user.email}: {post.id}")
    return jsonify(post.to_json(owner=user.summary(detailed=True))), 201


@optional_token
def get_food_posts(user):
    """Filtered, paginated feed; anonymous callers only see live listings."""
    page, limit = get_page_params(default_limit=10)
    conditions = []

    if user is None:
        conditions.append(Q(is_available=True) & Q(expiry_date__gte=datetime.utcnow()))

    category = request.args.get('category')
    if category:
        conditions.append(Q(category=category))

    location = request.args.get('location')
    if location:
        conditions.append(Q(location__icontains=location))

    search = request.args.get('search')
    if search:
        conditions.append(Q(name__icontains=search) | Q(description__icontains=search))

    min_expiry = request.args.get('minExpiryDate')
    if min_expiry:
        conditions.append(Q(expiry_date__gte=parse_datetime(min_expiry, 'minExpiryDate')))
    max_expiry = request.args.get('maxExpiryDate')
    if max_expiry:
        conditions.append(Q(expiry_date__lte=parse_datetime(max_expiry, 'maxExpiryDate')))

    query = Q()
    for condition in conditions:
        query &= condition

    posts, pagination = paginate(FoodPost.objects(query).order_by(_sort_key()), page, limit)

    return jsonify({
        "foodPosts": _serialize(posts),
        "pagination": pagination,
        "userType": "authenticated" if user else "public"
    }), 200


def get_food_post_by_id(post_id):
    post = find_by_id(FoodPost, post_id)
    if not post:
        raise NotFound("Food post not found")
    return jsonify(_serialize([post], detailed=True)[0]), 200


@token_required
def update_food_post(user, post_id):
    post = _get_owned_post(user, post_id, "update")
    data = _payload()

    old_public_id = post.image_metadata.public_id if post.image_metadata else None
    old_image_url = post.image_url
    _apply_fields(post, data)
    post.validate()

    upload = _upload_image()
    if upload:
        post.image_url = upload['url']
        post.image_metadata = ImageMetadata.from_upload(upload)
    elif post.image_url != old_image_url:
        # A pasted URL no longer points at the hosted image
        post.image_metadata = None

    post.save()

    if old_public_id and post.image_url != old_image_url:
        current_app.extensions['media'].delete(old_public_id)

    logger.info(f"Food post updated by {user.email}: {post.id}")
    return jsonify(post.to_json(owner=user.summary(detailed=True))), 200


@token_required
def delete_food_post(user, post_id):
    post = _get_owned_post(user, post_id, "delete")
    public_id = post.image_metadata.public_id if post.image_metadata else None

    post.delete()
    if public_id:
        current_app.extensions['media'].delete(public_id)

    logger.info(f"Food post deleted by {user.email}: {post_id}")
    return jsonify({"message": "Food post removed"}), 200


def get_user_food_posts(user_id):
    owner = find_by_id(User, user_id)
    if not owner:
        raise NotFound("User not found")
    posts = list(FoodPost.objects(user=owner, is_available=True).order_by('-created_at'))
    return jsonify(_serialize(posts)), 200


def get_food_categories():
    return jsonify(sorted(FoodPost.objects.distinct('category'))), 200


@token_required
def get_my_food_posts(user):
    page, limit = get_page_params(default_limit=10)
    query = FoodPost.objects(user=user)

    is_available = request.args.get('isAvailable')
    if is_available is not None:
        query = query.filter(is_available=parse_bool(is_available))

    posts, pagination = paginate(query.order_by(_sort_key()), page, limit)
    return jsonify({
        "foodPosts": _serialize(posts),
        "pagination": pagination
    }), 200
