import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

import tokensale.fields


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='TokenSale',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100)),
                ('owner', models.CharField(help_text='Address allowed to run administrative operations', max_length=64)),
                ('wallet', models.CharField(help_text='Destination for withdrawn payments and unsold tokens', max_length=64)),
                ('sold_tokens', tokensale.fields.AmountField(default=0, help_text='Tokens sold including bonus')),
                ('wei_raised', tokensale.fields.AmountField(default=0, help_text='Payments accepted (refunds excluded)')),
                ('withdrawn_wei', tokensale.fields.AmountField(default=0, help_text='Payments already sent to the wallet')),
                ('unsold_tokens', tokensale.fields.AmountField(default=0, help_text='Tokens skipped by force-closed rounds')),
                ('locked_tokens', tokensale.fields.AmountField(default=0, help_text='Tokens waiting for the unlock date')),
                ('distributed_tokens', tokensale.fields.AmountField(default=0, help_text='Tokens delivered to participants')),
                ('min_purchase', tokensale.fields.AmountField(default=0, help_text='Smallest accepted payment')),
                ('current_round', models.PositiveSmallIntegerField(default=1)),
                ('current_round_start', models.DateTimeField(default=django.utils.timezone.now)),
                ('paused', models.BooleanField(default=False)),
                ('start_time', models.DateTimeField()),
                ('end_time', models.DateTimeField()),
                ('locked_till', models.DateTimeField(help_text='Locked balances can be released from this moment on')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='SaleTier',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('index', models.PositiveSmallIntegerField()),
                ('cap', tokensale.fields.AmountField(default=0, help_text='Cumulative tokens-sold ceiling of this round')),
                ('rate', tokensale.fields.AmountField(default=0, help_text='Tokens per payment unit')),
                ('bonus_pct', models.PositiveIntegerField(default=0)),
                ('sale', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tiers', to='tokensale.tokensale')),
            ],
            options={
                'ordering': ['sale', 'index'],
                'unique_together': {('sale', 'index')},
            },
        ),
        migrations.CreateModel(
            name='SaleParticipant',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('address', models.CharField(max_length=64)),
                ('paid', tokensale.fields.AmountField(default=0)),
                ('tokens_bought', tokensale.fields.AmountField(default=0)),
                ('bonus_tokens', tokensale.fields.AmountField(default=0)),
                ('locked', tokensale.fields.AmountField(default=0)),
                ('distributed', tokensale.fields.AmountField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('sale', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='participants', to='tokensale.tokensale')),
            ],
            options={
                'indexes': [models.Index(fields=['sale', 'address'], name='tokensale_participant_idx')],
                'unique_together': {('sale', 'address')},
            },
        ),
        migrations.CreateModel(
            name='SalePurchase',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('paid_amount', tokensale.fields.AmountField(default=0)),
                ('refund_amount', tokensale.fields.AmountField(default=0)),
                ('tokens', tokensale.fields.AmountField(default=0)),
                ('bonus_tokens', tokensale.fields.AmountField(default=0)),
                ('delivered', tokensale.fields.AmountField(default=0)),
                ('locked', tokensale.fields.AmountField(default=0)),
                ('round_before', models.PositiveSmallIntegerField()),
                ('round_after', models.PositiveSmallIntegerField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('participant', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='purchases', to='tokensale.saleparticipant')),
                ('sale', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='purchases', to='tokensale.tokensale')),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['sale', '-created_at'], name='tokensale_purchase_idx')],
            },
        ),
    ]
