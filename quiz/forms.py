from django import forms


class RatingForm(forms.Form):
    rating = forms.IntegerField(min_value=1, max_value=5)
    comment = forms.CharField(max_length=1000, required=False)


class SubmitAnswerForm(forms.Form):
    questionId = forms.IntegerField()


class QuizResultForm(forms.Form):
    userId = forms.IntegerField()
    quizId = forms.IntegerField()
    score = forms.IntegerField(min_value=0)
    maxPossibleScore = forms.IntegerField(min_value=0)
