# Supabase tables: Group, User, Image, Task, assigned_tasks
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

Group:
- id: int8 (primary key)
- building: text
- apt_num: text
- created_at: timestamp (default: now())

User:
- id: int8 (primary key)
- name: text (not null)
- email: text (unique, not null) - matches the Supabase Auth email
- phone: text (nullable)
- dob: date (nullable)
- bio: text (nullable)
- allergies: text (nullable)
- special_needs: text (nullable)
- pets: text (nullable)
- group_id: int8 (foreign key to Group.id, nullable) - at most one group per user
- created_at: timestamp (default: now())

Image:
- id: int8 (primary key)
- url: text (not null) - public URL in the Images storage bucket
- title: text
- category: text - free-text tag
- group_id: int8 (foreign key to Group.id, not null)
- user_id: int8 (foreign key to User.id) - creator; older rows call this created_by
- created_at: timestamp (default: now())

Task:
- id: int8 (primary key)
- name: text (not null)
- description: text (nullable)
- assigned_to: int8 (foreign key to User.id, nullable) - primary assignee
- completed: bool (default: false)
- due_date: timestamp
- group_id: int8 (foreign key to Group.id, not null)
- created_at: timestamp (default: now())

assigned_tasks:
- task_id: int8 (foreign key to Task.id, not null)
- user_id: int8 (foreign key to User.id, not null)
- assigned_at: timestamp (default: now())
- primary key on (task_id, user_id)

Task.assigned_to and assigned_tasks are independent: a task keeps its single
primary assignee and any number of junction assignees, and neither is derived
from the other.

Storage bucket "Images": objects keyed <group_id>/<category>/<epoch_ms>-<filename>
"""
