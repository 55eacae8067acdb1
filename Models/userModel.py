from mongoengine import (
    Document, EmailField, StringField, DateTimeField, ValidationError
)
from bcrypt import hashpw, gensalt, checkpw
from datetime import datetime


# =====================================
#  USER MODEL
# =====================================
class User(Document):
    username = StringField(required=True, unique=True, min_length=3, max_length=30)
    email = EmailField(required=True, unique=True)
    password = StringField(required=True)
    location = StringField(max_length=200, default="")
    bio = StringField(max_length=500, default="")
    profile_picture = StringField(default="")
    created_at = DateTimeField(default=datetime.utcnow)
    updated_at = DateTimeField(default=datetime.utcnow)

    meta = {
        'collection': 'users',
        'indexes': ['email', 'username']
    }

    MIN_PASSWORD_LENGTH = 6

    def clean(self):
        """Normalize user input before saving."""
        if self.email:
            self.email = self.email.strip().lower()
        if self.username:
            self.username = self.username.strip()
        if self.location:
            self.location = self.location.strip()

    # =====================================
    #  SAVE OVERRIDE
    # =====================================
    def _password_changed(self) -> bool:
        return self.pk is None or 'password' in self._get_changed_fields()

    def save(self, *args, **kwargs):
        """Hash a newly set password before it reaches the database."""
        if self.password and self._password_changed():
            if len(self.password) < self.MIN_PASSWORD_LENGTH:
                raise ValidationError(
                    "Password is too short",
                    errors={"password": f"must be at least {self.MIN_PASSWORD_LENGTH} characters"}
                )
            self.password = self.hash_password(self.password)
        self.updated_at = datetime.utcnow()
        return super(User, self).save(*args, **kwargs)

    # =====================================
    #  PASSWORD HELPERS
    # =====================================
    def correct_password(self, candidate_password: str) -> bool:
        """Check if provided password matches the stored hash."""
        if not candidate_password or not self.password:
            return False
        try:
            return checkpw(candidate_password.encode('utf-8'), self.password.encode('utf-8'))
        except ValueError:
            # Stored value is not a bcrypt hash
            return False

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password using bcrypt."""
        return hashpw(password.encode('utf-8'), gensalt(12)).decode('utf-8')

    # =====================================
    #  JSON SERIALIZERS
    # =====================================
    def summary(self, detailed=False) -> dict:
        """Display form used wherever another record references this user."""
        data = {
            'id': str(self.id),
            'username': self.username,
            'profilePicture': self.profile_picture,
        }
        if detailed:
            data['location'] = self.location
            data['bio'] = self.bio
        return data

    def to_json(self) -> dict:
        """Convert user document to JSON-friendly dict (never includes the password)."""
        return {
            'id': str(self.id),
            'username': self.username,
            'email': self.email,
            'location': self.location,
            'bio': self.bio,
            'profilePicture': self.profile_picture,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None
        }
