from django import forms

from accounts.models import UserRole, UserStatus


class RegisterForm(forms.Form):
    name = forms.CharField(max_length=150)
    email = forms.EmailField()
    password = forms.CharField(min_length=8, max_length=128)
    dailyQuizReminder = forms.BooleanField(required=False)


class LoginForm(forms.Form):
    # E-mail address or username
    email = forms.CharField(max_length=254)
    password = forms.CharField(max_length=128)


class PasswordResetRequestForm(forms.Form):
    email = forms.EmailField()


class NewPasswordForm(forms.Form):
    newPassword = forms.CharField(min_length=8, max_length=128)


class PasswordChangeForm(NewPasswordForm):
    currentPassword = forms.CharField(max_length=128)


class ProfileForm(forms.Form):
    name = forms.CharField(max_length=150)
    email = forms.EmailField()
    dailyQuizReminder = forms.BooleanField(required=False)


class AdminUserForm(forms.Form):
    name = forms.CharField(max_length=150)
    email = forms.EmailField()
    password = forms.CharField(min_length=8, max_length=128)
    role = forms.ChoiceField(choices=UserRole.choices, required=False)
    status = forms.ChoiceField(choices=UserStatus.choices, required=False)
    dailyQuizReminder = forms.BooleanField(required=False)
    dailyStreak = forms.IntegerField(min_value=0, required=False)


class AdminUserUpdateForm(AdminUserForm):

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        for field in self.fields.values():
            field.required = False
