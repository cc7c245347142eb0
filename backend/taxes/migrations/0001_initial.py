from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('tenant', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='TaxCategory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100)),
                ('is_active', models.BooleanField(default=True)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tax_categories', to='tenant.tenant')),
            ],
            options={
                'verbose_name': 'Tax Category',
                'verbose_name_plural': 'Tax Categories',
                'ordering': ['name'],
                'constraints': [
                    models.UniqueConstraint(fields=('tenant', 'name'), name='unique_tax_category_name_per_tenant'),
                ],
            },
        ),
        migrations.CreateModel(
            name='TaxRate',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('rate_percent', models.DecimalField(decimal_places=2, help_text='Rate in whole percent, e.g. 21.00 for 21%.', max_digits=5)),
                ('effective_from', models.DateTimeField()),
                ('effective_to', models.DateTimeField(blank=True, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('tax_category', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='rates', to='taxes.taxcategory')),
            ],
            options={
                'verbose_name': 'Tax Rate',
                'verbose_name_plural': 'Tax Rates',
                'ordering': ['tax_category', '-effective_from'],
                'indexes': [
                    models.Index(fields=['tax_category', 'effective_from'], name='taxes_taxra_tax_cat_bc1d49_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(('rate_percent__gte', 0), ('rate_percent__lte', 100)),
                        name='tax_rate_percent_range',
                    ),
                ],
            },
        ),
    ]
