from mongoengine import (
    Document, EmbeddedDocument, StringField, BooleanField, DateTimeField,
    IntField, FloatField, ReferenceField, EmbeddedDocumentField
)
from datetime import datetime
from enum import Enum

from Utils.db import reference_id


class FoodCategory(Enum):
    FRUITS = "Fruits"
    VEGETABLES = "Vegetables"
    DAIRY = "Dairy"
    MEAT = "Meat"
    GRAINS = "Grains"
    BAKED_GOODS = "Baked Goods"
    OTHER = "Other"


class FoodCondition(Enum):
    FRESH = "Fresh"
    NEAR_EXPIRY = "Near Expiry"
    FROZEN = "Frozen"
    OPENED = "Opened"


class Coordinates(EmbeddedDocument):
    latitude = FloatField(min_value=-90, max_value=90)
    longitude = FloatField(min_value=-180, max_value=180)

    def to_json(self):
        return {'latitude': self.latitude, 'longitude': self.longitude}


class ImageMetadata(EmbeddedDocument):
    public_id = StringField()
    width = IntField()
    height = IntField()
    format = StringField()
    size = IntField()

    @classmethod
    def from_upload(cls, upload: dict):
        return cls(
            public_id=upload.get('publicId'),
            width=upload.get('width'),
            height=upload.get('height'),
            format=upload.get('format'),
            size=upload.get('size')
        )

    def to_json(self):
        return {
            'publicId': self.public_id,
            'width': self.width,
            'height': self.height,
            'format': self.format,
            'size': self.size
        }


class FoodPost(Document):
    user = ReferenceField('User', required=True)

    name = StringField(required=True, max_length=100)
    description = StringField(required=True, max_length=500)
    category = StringField(choices=[e.value for e in FoodCategory], required=True)
    condition = StringField(choices=[e.value for e in FoodCondition], required=True)
    expiry_date = DateTimeField(required=True)
    location = StringField(required=True, max_length=200)
    quantity = StringField(required=True, max_length=100)

    # Image hosted by the media delegate
    image_url = StringField(default="")
    image_metadata = EmbeddedDocumentField(ImageMetadata)

    is_available = BooleanField(default=True)
    coordinates = EmbeddedDocumentField(Coordinates)

    created_at = DateTimeField(default=datetime.utcnow)
    updated_at = DateTimeField(default=datetime.utcnow)

    meta = {
        'collection': 'food_posts',
        'indexes': [
            ('category', 'location', 'expiry_date'),
            'user',
            'is_available',
            '-created_at'
        ]
    }

    # Fields a client may send, keyed by their JSON name
    EDITABLE_FIELDS = {
        'name': 'name',
        'description': 'description',
        'category': 'category',
        'condition': 'condition',
        'expiryDate': 'expiry_date',
        'location': 'location',
        'quantity': 'quantity',
        'imageUrl': 'image_url',
        'isAvailable': 'is_available',
        'coordinates': 'coordinates',
    }

    SORT_FIELDS = {
        'createdAt': 'created_at',
        'updatedAt': 'updated_at',
        'expiryDate': 'expiry_date',
        'name': 'name',
        'category': 'category',
        'location': 'location',
    }

    def clean(self):
        for field in ('name', 'description', 'location', 'quantity'):
            value = getattr(self, field)
            if isinstance(value, str):
                setattr(self, field, value.strip())

    def save(self, *args, **kwargs):
        self.updated_at = datetime.utcnow()
        return super(FoodPost, self).save(*args, **kwargs)

    @property
    def is_expired(self) -> bool:
        return bool(self.expiry_date) and datetime.utcnow() > self.expiry_date

    def summary(self) -> dict:
        return {
            'id': str(self.id),
            'name': self.name,
            'imageUrl': self.image_url
        }

    def to_json(self, owner=None):
        """Convert the listing to a JSON-friendly dict.

        `owner` is the already-resolved owner summary; when omitted only the
        owner id is emitted.
        """
        owner_id = reference_id(self, 'user')
        return {
            'id': str(self.id),
            'name': self.name,
            'description': self.description,
            'category': self.category,
            'condition': self.condition,
            'expiryDate': self.expiry_date.isoformat() if self.expiry_date else None,
            'isExpired': self.is_expired,
            'location': self.location,
            'quantity': self.quantity,
            'imageUrl': self.image_url,
            'imageMetadata': self.image_metadata.to_json() if self.image_metadata else None,
            'isAvailable': self.is_available,
            'coordinates': self.coordinates.to_json() if self.coordinates else None,
            'user': owner if owner is not None else (str(owner_id) if owner_id else None),
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None
        }
