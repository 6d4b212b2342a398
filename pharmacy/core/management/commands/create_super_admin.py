"""
Management command to create an administrator account
"""
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError


class Command(BaseCommand):
    help = "Creates a superuser with the admin role"

    def add_arguments(self, parser):
        parser.add_argument('--username', default='admin')
        parser.add_argument('--email', default='admin@example.com')
        parser.add_argument('--password', required=True)

    def handle(self, *args, **options):
        User = get_user_model()
        if User.objects.filter(username=options['username']).exists():
            raise CommandError(f"User '{options['username']}' already exists")

        user = User.objects.create_superuser(
            username=options['username'],
            email=options['email'],
            password=options['password'],
            role=User.ROLE_ADMIN,
        )
        self.stdout.write(self.style.SUCCESS(f"Created admin user '{user.username}'"))
